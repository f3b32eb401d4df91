import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blob_storage import build_document_storage
from config import Settings
from database import Database
from routers import customers_router, mandates_router, sessions_router
from services.encryption import FieldCipher
from services.pdf_renderer import build_renderer
from services.signatures import SignatureStore

logger = logging.getLogger(__name__)


def _field_errors(exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({
            "field": ".".join(loc) or "body",
            "message": error.get("msg", "Invalid value"),
        })
    return details


def create_app(settings: Settings = None) -> FastAPI:
    """
    Build the application and its components.

    Everything stateful (database, storage, codec, renderer) is created
    here from `settings` and attached to app.state.
    """
    if settings is None:
        settings = Settings.from_env()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Direct Debit Mandate Service")

    app.state.settings = settings
    app.state.db = Database(settings.database_url, echo=settings.sql_echo)
    app.state.storage = build_document_storage(settings)
    app.state.cipher = FieldCipher(settings.field_encryption_key)
    app.state.signature_store = SignatureStore(app.state.storage, mode=settings.signature_storage)
    app.state.renderer = build_renderer(settings, app.state.cipher, app.state.signature_store)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sessions_router)
    app.include_router(mandates_router)
    app.include_router(customers_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": _field_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unmatched routes raise a bare "Not Found"
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # Last-resort error middleware
    @app.middleware("http")
    async def internal_error_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/api/health", tags=["health"])
    def health():
        database_ok = app.state.db.check_connection()
        return {"status": "ok" if database_ok else "degraded", "database": database_ok}

    @app.on_event("shutdown")
    def dispose_database():
        app.state.db.dispose()

    return app


if __name__ == "__main__":
    port = int(os.getenv("PORT", 10000))
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=port, reload=True)
