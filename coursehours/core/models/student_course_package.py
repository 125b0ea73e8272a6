"""Student course package: hour balance granted to one student from one course package."""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from coursehours.db.session import Base


class StudentCoursePackage(Base):
    """
    remaining_hours only changes through the consumption engine (debit / refund).
    start_date and end_date are informational and never checked on consumption.
    """

    __tablename__ = "student_course_packages"
    __table_args__ = (
        CheckConstraint("remaining_hours >= 0", name="chk_student_course_package_remaining_hours"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    course_package_id = Column(Integer, ForeignKey("course_packages.id"), nullable=False, index=True)
    remaining_hours = Column(Numeric(10, 1), nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    student = relationship("Student")
    course_package = relationship("CoursePackage")
