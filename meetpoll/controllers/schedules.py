import logging

from fastapi import APIRouter

from meetpoll.dependencies import Service
from meetpoll.errors import BadRequestError, ScheduleNotFoundError, StoreError
from meetpoll.models.schedules import CreateScheduleRequest, ResponseRequest, Schedule

logger = logging.getLogger("meetpoll.schedules")
router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("", response_model=list[Schedule])
async def list_schedules(service: Service) -> list[Schedule]:
    schedules = await service.list_schedules()
    logger.info("GET /schedules returned %d schedules", len(schedules))
    return schedules


@router.post("", status_code=201, response_model=Schedule)
async def create_schedule(req: CreateScheduleRequest, service: Service) -> Schedule:
    logger.info("POST /schedules candidates=%d", len(req.candidates or []))
    try:
        schedule = await service.create_schedule(req)
    except StoreError as e:
        logger.exception("Failed to create schedule")
        raise BadRequestError(detail=e.detail) from e
    logger.info("Created schedule id=%s", schedule.id)
    return schedule


@router.get("/{schedule_id}", response_model=Schedule)
async def get_schedule(schedule_id: str, service: Service) -> Schedule:
    logger.info("GET /schedules/%s", schedule_id)
    schedule = await service.get_schedule_by_id(schedule_id)
    if schedule is None:
        logger.warning("Schedule not found: %s", schedule_id)
        raise ScheduleNotFoundError()
    return schedule


@router.post("/{schedule_id}/responses", status_code=201, response_model=Schedule)
async def submit_response(schedule_id: str, req: ResponseRequest, service: Service) -> Schedule:
    logger.info("POST /schedules/%s/responses answers=%d", schedule_id, len(req.answers or {}))
    try:
        schedule = await service.upsert_response(schedule_id, req)
    except StoreError as e:
        logger.exception("Failed to save response on schedule %s", schedule_id)
        raise BadRequestError(detail=e.detail) from e
    logger.info(
        "Saved response on schedule %s (%d responses)", schedule_id, len(schedule.responses)
    )
    return schedule
