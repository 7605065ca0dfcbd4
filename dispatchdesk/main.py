import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from dispatchdesk.core.config import settings as core_settings
from dispatchdesk.database import check_database_connection
from dispatchdesk.routes.bonuses import router as bonuses_router
from dispatchdesk.routes.drivers import router as drivers_router
from dispatchdesk.routes.loads import router as loads_router
from dispatchdesk.routes.payroll import router as payroll_router
from dispatchdesk.routes.prebooks import router as prebooks_router
from dispatchdesk.services.errors import DispatchError


class Settings(BaseSettings):
    app_name: str = "dispatchdesk-api"
    app_env: str = "development"
    project_port: int = 8370

    session_secret_key: str = Field(default="change-this-session-secret", validation_alias="SESSION_SECRET_KEY")
    session_cookie_domain: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()

logging.basicConfig(
    level=getattr(logging, core_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
env_lower = (settings.app_env or "").strip().lower()
session_https_only = env_lower in {"production", "prod"}
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    same_site="lax",
    https_only=session_https_only,
    domain=(settings.session_cookie_domain or None),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=core_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(drivers_router)
app.include_router(loads_router)
app.include_router(bonuses_router)
app.include_router(payroll_router)
app.include_router(prebooks_router)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request: %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": exc.code, "detail": exc.message},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("request: %s %s database error: %s", request.method, request.url.path, str(exc))
    return JSONResponse(
        status_code=503,
        content={"status": "error", "message": "persistence_error", "detail": "Database unavailable, please retry."},
    )


@app.get("/health")
def health():
    try:
        check_database_connection()
    except SQLAlchemyError as exc:
        logger.warning("health: database check failed: %s", exc)
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "ok", "database": "ok"}
