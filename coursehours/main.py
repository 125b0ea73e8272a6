import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from coursehours.api.v1.activity_rules.router import router as activity_rules_router
from coursehours.api.v1.consumption.router import router as consumption_router
from coursehours.api.v1.course_packages.router import router as course_packages_router
from coursehours.api.v1.stats.router import router as stats_router
from coursehours.api.v1.student_course_packages.router import router as student_course_packages_router
from coursehours.api.v1.students.router import router as students_router
from coursehours.core.config import settings
from coursehours.core.logging import configure_logging
from coursehours.db.schema_check import ensure_tables
from coursehours.db.session import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await ensure_tables(engine)
    yield
    await engine.dispose()


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed input is a 400 across the API, including body/query parsing errors
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Course Hours Backend", lifespan=lifespan)

    # CORS: allow the frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    # Routers
    app.include_router(students_router)
    app.include_router(course_packages_router)
    app.include_router(student_course_packages_router)
    app.include_router(activity_rules_router)
    app.include_router(consumption_router)
    app.include_router(stats_router)

    # Frontend last so it never shadows /api routes
    frontend_dir = Path(settings.frontend_dir)
    if frontend_dir.is_dir():
        app.mount("/", StaticFiles(directory=frontend_dir, html=True), name="frontend")
    else:
        logger.info("Frontend directory %s not found; serving the API only", frontend_dir)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("coursehours.main:app", host="0.0.0.0", port=settings.port)
