from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from pymongo.errors import PyMongoError
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from campuspoll.api import prompt_stats, prompts, user_responses, users, webhooks
from campuspoll.api.envelope import fail
from campuspoll.core.config import Settings
from campuspoll.core.database import Database
from campuspoll.core.errors import AlreadyRespondedError, PollError
from campuspoll.core.moderation import ModerationGate, build_moderation_gate

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        msg = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {msg}" if location else msg)
    return "; ".join(messages)


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AlreadyRespondedError)
    async def already_responded_handler(request, exc: AlreadyRespondedError):
        return fail(exc.status_code, message=exc.message, data=exc.existing)

    @app.exception_handler(PollError)
    async def poll_error_handler(request, exc: PollError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            return fail(exc.status_code, error=exc.message)
        return fail(exc.status_code, message=exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request, exc: RequestValidationError):
        return fail(400, message=_validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc: StarletteHTTPException):
        return fail(exc.status_code, message=str(exc.detail))

    @app.exception_handler(PyMongoError)
    async def storage_error_handler(request, exc: PyMongoError):
        logger.error(f"❌ Storage error in {request.method} {request.url.path}: {exc}")
        return fail(500, error=str(exc))

    @app.exception_handler(Exception)
    async def unhandled_handler(request, exc: Exception):
        logger.error(f"❌ Unhandled error in {request.method} {request.url.path}: {exc}")
        return fail(500, error=str(exc))


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    moderation_gate: Optional[ModerationGate] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Campus Poll",
        description="Campus Q&A polling API with moderation and demographic stats",
        version="1.0.0"
    )
    app.state.settings = settings
    app.state.db = database or Database(settings)
    app.state.moderation = moderation_gate or build_moderation_gate(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(users.router, prefix="/api", tags=["users"])
    app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
    app.include_router(prompts.router, prefix="/api", tags=["prompts"])
    app.include_router(user_responses.router, prefix="/api", tags=["user-responses"])
    app.include_router(prompt_stats.router, prefix="/api", tags=["prompt-stats"])

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        """Connect to the database and make sure indexes exist"""
        await app.state.db.connect()
        logger.info("✅ Application startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.db.disconnect()
        logger.info("✅ Application shutdown completed")

    @app.get("/")
    async def root():
        return {"message": "Campus Poll API", "status": "running"}

    @app.get("/healthz")
    async def healthz():
        """Liveness check"""
        return {"status": "ok"}

    @app.get("/health")
    async def health_check():
        """Health check with collection counts"""
        db = app.state.db
        try:
            await db.ping(timeout=3.0)
            return {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "database": "connected",
                "stats": {
                    "users": await db.users.count_documents({}),
                    "prompts": await db.prompts.count_documents({}),
                    "responses": await db.user_responses.count_documents({})
                }
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": str(e)
            }

    @app.get("/health/db")
    async def database_health_check():
        """Returns 503 on ping timeout and 500 if the ping fails"""
        try:
            await app.state.db.ping(timeout=5.0)
        except asyncio.TimeoutError:
            logger.error("Database health check timed out")
            raise HTTPException(status_code=503, detail="Database connection timeout")
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
        return {"ok": True, "status": "healthy", "database": "connected"}

    return app


settings = Settings()
logging.basicConfig(level=settings.log_level)
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
