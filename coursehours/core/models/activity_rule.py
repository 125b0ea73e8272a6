from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from coursehours.db.session import Base


class ActivityRule(Base):
    """Scheduled activity template. hours_per_class is derived from total_hours / days."""

    __tablename__ = "activity_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    course_type = Column(String(100), nullable=False)
    days = Column(Integer, nullable=False)
    total_hours = Column(Numeric(10, 1), nullable=False)
    hours_per_class = Column(Numeric(10, 1), nullable=False)  # one decimal place
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
