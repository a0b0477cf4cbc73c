from pydantic import BaseModel

from app.schemas.timetable import PeriodOut


class ClassOut(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class SectionOut(BaseModel):
    id: str
    name: str
    class_id: str
    label: str


class TeacherOut(BaseModel):
    user_id: str
    display_name: str | None = None
    email: str
    label: str


class CatalogOut(BaseModel):
    classes: list[ClassOut]
    sections: list[SectionOut]
    periods: list[PeriodOut]
    teachers: list[TeacherOut]
