import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from meetpoll.config import get_settings
from meetpoll.errors import register_exception_handlers
from meetpoll.lifespan import cleanup_resources, setup_resources
from meetpoll.middleware import HTTPLogMiddleware
from meetpoll.controllers.health import router as health_router
from meetpoll.controllers.schedules import router as schedules_router

settings = get_settings()

app = FastAPI(title="meetpoll", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origins_regex or None,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.debug.request:
    logging.getLogger("meetpoll.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)

app.router.lifespan_context = lifespan

register_exception_handlers(app)

app.include_router(health_router)
app.include_router(schedules_router)
