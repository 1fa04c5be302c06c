# File: app/main.py
# Project: itms-backend

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings, get_settings
from app.core.errors import AppError, UpstreamFailure
from app.core.ratelimit import limiter
from app.db.base import load_models
from app.db.session import make_engine, make_session_factory
from app.routers import auth, comments, notifications, productinfo, projects, tickets, users
from app.services.notify_email import EmailSender

log = logging.getLogger("app")


def _register_error_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, UpstreamFailure):
            log.error("%s %s failed upstream: %s", request.method, request.url.path, exc.__cause__ or exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={"error": f"{where}: {msg}" if where else msg, "code": "validation_failed"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        log.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "internal_error"},
        )

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    load_models()
    engine = make_engine(settings)

    app = FastAPI(title="ITMS API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.mailer = EmailSender(settings)

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    _register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"ok": True}

    for module in (auth, users, projects, tickets, comments, productinfo, notifications):
        app.include_router(module.router, prefix=settings.api_prefix)

    log.info("ITMS API ready (prefix %s)", settings.api_prefix)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=get_settings().port)
