from coursehours.core.models.student import Student
from coursehours.core.models.course_package import CoursePackage
from coursehours.core.models.student_course_package import StudentCoursePackage
from coursehours.core.models.activity_rule import ActivityRule
from coursehours.core.models.consumption_record import ConsumptionRecord

__all__ = [
    "Student",
    "CoursePackage",
    "StudentCoursePackage",
    "ActivityRule",
    "ConsumptionRecord",
]
