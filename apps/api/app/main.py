import logging
from contextlib import asynccontextmanager
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from pydantic_settings import BaseSettings, SettingsConfigDict

from shelfie_core.errors import DomainError
from shelfie_core.timeutils import resolve_tz
from app.infrastructure.cache.redis_infra import make_flag_store
from app.sessions import SessionRegistry
from .routers import all_routers

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "Shelfie API"
    # credentials
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    # one-time flags (in-memory when redis_url is unset)
    redis_url: str | None = None
    flag_namespace: str = "shelfie:flag:"
    # derived views
    community_score_mode: Literal["placeholder", "live"] = "placeholder"
    timezone: str | None = None  # IANA name; process local zone when unset
    session_ttl_sec: int = 3600
    enable_polling: bool = True
    # env config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv(find_dotenv(), override=False)

    settings = Settings()
    app.state.settings = settings
    app.state.supabase_url = settings.supabase_url
    app.state.supabase_api_key = settings.supabase_api_key
    app.state.tz = resolve_tz(settings.timezone)

    app.state.flag_store, redis_client = make_flag_store(
        settings.redis_url, settings.flag_namespace
    )

    app.state.sessions = SessionRegistry(
        ttl_sec=settings.session_ttl_sec, enable_polling=settings.enable_polling
    )
    log.info(
        "%s started (community score: %s, flags: %s)",
        settings.app_name,
        settings.community_score_mode,
        "redis" if redis_client is not None else "memory",
    )

    try:
        yield
    finally:
        await app.state.sessions.aclose()
        if redis_client is not None:
            await redis_client.aclose()


app = FastAPI(title="Shelfie API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(
        status_code=exc.status, content={"detail": exc.message, "code": exc.code}
    )


def _custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="0.1.0",
        description="Shelfie API",
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    for path_item in schema.get("paths", {}).values():
        for operation in path_item.values():
            operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = _custom_openapi


@app.get("/health")
def health():
    s = app.state.settings
    return {"status": "ok", "service": s.app_name}


@app.get("/")
def read_root():
    return {"status": "ok"}


for r in all_routers:
    app.include_router(r)
