from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Availability(str, Enum):
    available = "available"
    maybe = "maybe"
    unavailable = "unavailable"

    @property
    def symbol(self) -> str:
        return AVAILABILITY_SYMBOL[self]

    @classmethod
    def parse(cls, value: Any) -> "Availability":
        """Map a submitted value onto an Availability; anything unknown is unavailable."""
        if isinstance(value, str) and value in cls._value2member_map_:
            return cls(value)
        return cls.unavailable


AVAILABILITY_SYMBOL: dict[Availability, str] = {
    Availability.available: "◯",
    Availability.maybe: "△",
    Availability.unavailable: "✕",
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests. Presence checks live in the service so that blank values
# surface as 400s with a readable message rather than 422s.


class CreateScheduleRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    candidates: list[str] | None = None


class ResponseRequest(CamelModel):
    name: str | None = None
    comment: str | None = None
    answers: dict[str, Any] | None = None


# Responses


class ParticipantResponse(CamelModel):
    id: str
    schedule_id: str
    name: str
    comment: str | None = None
    answers: dict[str, Availability]
    created_at: str | None = None
    updated_at: str


class AvailabilityCount(CamelModel):
    available: int = 0
    maybe: int = 0
    unavailable: int = 0


class Schedule(CamelModel):
    id: str
    title: str
    description: str | None = None
    candidates: list[str]
    created_at: str
    updated_at: str | None = None
    responses: list[ParticipantResponse] = []
    summary: dict[str, AvailabilityCount] = {}
