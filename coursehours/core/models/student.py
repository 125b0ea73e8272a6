from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from coursehours.db.session import Base


class Student(Base):
    """Student master data. Assignments and consumption records are removed in code before the row."""

    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    nickname = Column(String(255), nullable=False, default="")
    # Guardian name / contact details, free text
    parent_contact = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
