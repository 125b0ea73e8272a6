"""Consumption record: audit entry for one debit. Deleting it through reversal refunds the hours."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship

from coursehours.db.session import Base


class ConsumptionRecord(Base):
    __tablename__ = "consumption_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    course_package_id = Column(Integer, ForeignKey("course_packages.id"), nullable=False)
    # Exact assignment debited; null on rows written before it was tracked
    student_course_package_id = Column(Integer, ForeignKey("student_course_packages.id"), nullable=True)
    activity_id = Column(Integer, ForeignKey("activity_rules.id", ondelete="SET NULL"), nullable=True)
    hours_consumed = Column(Numeric(10, 1), nullable=False)
    consume_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    remark = Column(Text, nullable=True)

    student = relationship("Student")
    course_package = relationship("CoursePackage")
    student_course_package = relationship("StudentCoursePackage")
    activity = relationship("ActivityRule")
