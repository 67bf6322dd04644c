from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenant_authz.authz.audit import LoggingAuditSink
from tenant_authz.configs.logging_config import get_logger, setup_logging
from tenant_authz.configs.settings import Settings, get_settings
from tenant_authz.errors import AppError
from tenant_authz.repositories.store_factory import build_role_store
from tenant_authz.routers.access_router import router as access_router
from tenant_authz.routers.health_router import router as health_router
from tenant_authz.utils.response import failure

log = get_logger(__name__)


def _cors_origins(raw_origins) -> list[str]:
    # .env can provide a comma-separated string
    if isinstance(raw_origins, str):
        return [o.strip() for o in raw_origins.split(",") if o.strip()]
    if isinstance(raw_origins, (list, tuple, set)):
        return list(raw_origins)
    return []


def create_app() -> FastAPI:
    app = FastAPI(title="tenant_authz", version="0.1.0")
    settings: Settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.perf_counter()
        method = request.method
        path = request.url.path
        request_id = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
        tenant_id = request.headers.get(settings.TENANT_HEADER)

        log.info(
            "request.start method=%s path=%s request_id=%s tenant_hint=%s",
            method,
            path,
            request_id,
            tenant_id,
        )
        status_code = "unknown"
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            log.info(
                "request.end method=%s path=%s status=%s request_id=%s elapsed_ms=%s",
                method,
                path,
                status_code,
                request_id,
                elapsed_ms,
            )
        return response

    app.include_router(health_router)
    app.include_router(access_router)

    @app.exception_handler(AppError)
    async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
        code = getattr(exc, "code", None)
        log.info("request.error type=app_error status=%s code=%s message=%s", exc.http_status, code, exc.message)
        return JSONResponse(status_code=exc.http_status, content=failure(exc.message, code))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error: %s", str(exc))
        return JSONResponse(status_code=500, content=failure("internal server error"))

    @app.on_event("startup")
    async def startup() -> None:
        setup_logging(settings.LOG_LEVEL)
        app.state.settings = settings
        app.state.role_store = build_role_store(settings)
        app.state.audit_sink = LoggingAuditSink()
        log.info("startup.done store=%s", app.state.role_store.name())

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("shutdown.begin")
        store = getattr(app.state, "role_store", None)
        if store is not None:
            await store.close()
        log.info("shutdown.done")

    return app


app = create_app()
