"""Course package: a purchasable bundle of hours for one course type."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from coursehours.db.session import Base


class CoursePackage(Base):
    __tablename__ = "course_packages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    total_hours = Column(Numeric(10, 1), nullable=False)
    # Matched against ActivityRule.course_type when hours are consumed
    course_type = Column(String(100), nullable=False)
    price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
