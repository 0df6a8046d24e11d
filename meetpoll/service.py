"""Schedule service: normalization, validation and read aggregation.

Every read of a single schedule joins the schedule record with its
participant responses. Every write ends with an explicit read-after-write
step so callers always receive that joined view, never the write's echo.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from meetpoll.db import (
    PARTICIPANT_RESPONSE,
    SCHEDULE,
    ParticipantResponseRecord,
    RecordStore,
    ScheduleRecord,
)
from meetpoll.errors import (
    InvalidCandidateError,
    MissingNameError,
    MissingTitleError,
    NoCandidatesError,
    ScheduleNotFoundError,
    StoreError,
)
from meetpoll.models.schedules import (
    Availability,
    AvailabilityCount,
    CreateScheduleRequest,
    ParticipantResponse,
    ResponseRequest,
    Schedule,
)
from meetpoll.timeutil import EPOCH, parse_iso, parse_iso_or_none, to_iso, utc_now

logger = logging.getLogger(__name__)

SCHEDULE_LIST_LIMIT = 200
RESPONSE_LIST_LIMIT = 500


def normalize_name(name: str) -> str:
    return name.strip().lower()


def normalize_candidates(candidates: Iterable[str]) -> list[str]:
    """Trim, drop blanks, parse and deduplicate candidate date/times.

    Each candidate becomes a UTC ISO-8601 string; duplicates collapse onto
    the position of their first occurrence.

    Raises:
        InvalidCandidateError: If a candidate is not an ISO-8601 date/time.
    """
    normalized = []
    for entry in candidates:
        entry = entry.strip()
        if not entry:
            continue
        try:
            normalized.append(to_iso(parse_iso(entry)))
        except ValueError:
            raise InvalidCandidateError(entry) from None
    return list(dict.fromkeys(normalized))


def normalize_answers(
    candidates: Iterable[str], answers: Mapping[str, Any] | None
) -> dict[str, Availability]:
    """One Availability per candidate; unknown keys are dropped and
    missing or unrecognized values become unavailable."""
    answers = answers or {}
    return {candidate: Availability.parse(answers.get(candidate)) for candidate in candidates}


def _response_sort_key(record: ParticipantResponseRecord) -> datetime:
    return (
        parse_iso_or_none(record.get("updated_at") or record.get("created_at")) or EPOCH
    )


def summarize(
    candidates: list[str], responses: Iterable[ParticipantResponse]
) -> dict[str, AvailabilityCount]:
    summary = {candidate: AvailabilityCount() for candidate in candidates}
    for response in responses:
        for candidate, answer in response.answers.items():
            count = summary[candidate]
            setattr(count, answer.value, getattr(count, answer.value) + 1)
    return summary


class ScheduleService:
    def __init__(
        self,
        store: RecordStore,
        *,
        schedule_list_limit: int = SCHEDULE_LIST_LIMIT,
        response_list_limit: int = RESPONSE_LIST_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.schedule_list_limit = schedule_list_limit
        self.response_list_limit = response_list_limit
        self._clock = clock

    def _now(self) -> str:
        return to_iso(self._clock())

    def _to_response(
        self, record: ParticipantResponseRecord, candidates: list[str]
    ) -> ParticipantResponse:
        return ParticipantResponse(
            id=record["id"],
            schedule_id=record.get("schedule_id") or "",
            name=record.get("name") or "",
            comment=record.get("comment") or None,
            answers=normalize_answers(candidates, record.get("answers")),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at") or record.get("created_at") or self._now(),
        )

    def _to_schedule(
        self,
        record: ScheduleRecord,
        responses: Iterable[ParticipantResponseRecord] = (),
    ) -> Schedule:
        candidates = [c for c in record.get("candidates") or [] if isinstance(c, str)]
        mapped = [self._to_response(r, candidates) for r in responses]
        return Schedule(
            id=record["id"],
            title=record.get("title") or "",
            description=record.get("description") or None,
            candidates=candidates,
            created_at=record.get("created_at") or self._now(),
            updated_at=record.get("updated_at"),
            responses=mapped,
            summary=summarize(candidates, mapped),
        )

    async def list_schedules(self) -> list[Schedule]:
        records = await self.store.list(SCHEDULE, limit=self.schedule_list_limit)
        return [self._to_schedule(record) for record in records]

    async def get_schedule_by_id(self, schedule_id: str) -> Schedule | None:
        record = await self.store.get(SCHEDULE, schedule_id)
        if record is None:
            return None
        responses = await self.store.list(
            PARTICIPANT_RESPONSE,
            filters={"schedule_id": schedule_id},
            limit=self.response_list_limit,
        )
        responses.sort(key=_response_sort_key, reverse=True)
        return self._to_schedule(record, responses)

    async def _read_after_write(self, schedule_id: str, missing_message: str) -> Schedule:
        schedule = await self.get_schedule_by_id(schedule_id)
        if schedule is None:
            raise StoreError(missing_message)
        return schedule

    async def create_schedule(self, payload: CreateScheduleRequest) -> Schedule:
        title = (payload.title or "").strip()
        if not title:
            raise MissingTitleError()
        candidates = normalize_candidates(payload.candidates or [])
        if not candidates:
            raise NoCandidatesError()

        now = self._now()
        record = await self.store.create(
            SCHEDULE,
            {
                "title": title,
                "description": (payload.description or "").strip() or None,
                "candidates": candidates,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("Created schedule id=%s candidates=%d", record["id"], len(candidates))
        return await self._read_after_write(
            record["id"], "Created schedule but could not re-fetch it"
        )

    async def upsert_response(self, schedule_id: str, payload: ResponseRequest) -> Schedule:
        schedule = await self.get_schedule_by_id(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError()

        name = (payload.name or "").strip()
        if not name:
            raise MissingNameError()

        normalized_name = normalize_name(name)
        answers = {
            candidate: answer.value
            for candidate, answer in normalize_answers(schedule.candidates, payload.answers).items()
        }
        comment = (payload.comment or "").strip() or None
        now = self._now()

        existing = await self.store.list(
            PARTICIPANT_RESPONSE,
            filters={"schedule_id": schedule_id, "normalized_name": normalized_name},
            limit=1,
        )
        if existing:
            await self.store.update(
                PARTICIPANT_RESPONSE,
                existing[0]["id"],
                {
                    "name": name,
                    "normalized_name": normalized_name,
                    "comment": comment,
                    "answers": answers,
                    "updated_at": now,
                },
            )
            logger.info("Updated response id=%s on schedule %s", existing[0]["id"], schedule_id)
        else:
            record = await self.store.create(
                PARTICIPANT_RESPONSE,
                {
                    "schedule_id": schedule_id,
                    "name": name,
                    "normalized_name": normalized_name,
                    "comment": comment,
                    "answers": answers,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            logger.info("Created response id=%s on schedule %s", record["id"], schedule_id)

        return await self._read_after_write(
            schedule_id, "Schedule disappeared after updating response"
        )
