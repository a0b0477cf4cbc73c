from typing import List, Literal

from pydantic import BaseModel, Field


class EntryConflict(BaseModel):
    type: Literal["teacher", "room"]
    message: str
    other_entry_ids: List[str] = Field(default_factory=list)
    other_section_ids: List[str] = Field(default_factory=list)


class ConflictSummary(BaseModel):
    teacher: int = 0
    room: int = 0
    affected_entries: int = 0


class SchoolConflictReport(BaseModel):
    conflicts: dict[str, List[EntryConflict]]
    summary: ConflictSummary
