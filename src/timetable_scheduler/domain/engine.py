"""Models for the scheduling engine's stdout document."""

from pydantic import BaseModel, ConfigDict, Field


class EnginePlacement(BaseModel):
    """Single placement emitted by the engine."""

    day: str = Field(min_length=1)
    time: str = Field(min_length=1)
    room: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    teacher: str = Field(min_length=1)
    semester: str = Field(min_length=1)


class EngineConflict(BaseModel):
    """Unplaced demand emitted by the engine."""

    model_config = ConfigDict(populate_by_name=True)

    subject: str
    unscheduled_hours: int = Field(alias="unscheduledHours", ge=0)


class EngineResult(BaseModel):
    """Structured output of one successful engine run."""

    timetable: list[EnginePlacement]
    conflicts: list[EngineConflict] = Field(default_factory=list)
