from pydantic import BaseModel


class StatsResponse(BaseModel):
    total_students: int
    total_course_packages: int
    total_consumption_records: int
