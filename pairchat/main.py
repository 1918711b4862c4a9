import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pairchat.config import get_settings
from pairchat.database import init_models
from pairchat.errors import ChatError, InternalError
from pairchat.routers import auth, conversations, health, messages, realtime, users
from pairchat.ws import manager

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.database_auto_create:
        await init_models()
    if settings.redis_url:
        await manager.start_redis(settings.redis_url, settings.redis_channel)
    else:
        logger.info("REDIS_URL not configured, broadcasts stay on this instance")
    yield
    # Shutdown
    await manager.stop_redis()


app = FastAPI(
    title="PairChat API",
    description="Two-party realtime chat backend",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return JSONResponse(exc.to_dict(include_debug=not settings.is_production), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        field = errors[0].get("loc", ())[-1:] or ("request",)
        message = f"{field[0]}: {errors[0].get('msg', 'invalid value')}"
    body = {"message": message}
    if not settings.is_production:
        body["debug"] = str(errors)
    return JSONResponse(body, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError(debug=repr(exc))
    return JSONResponse(error.to_dict(include_debug=not settings.is_production), status_code=error.status_code)


app.include_router(auth.router, prefix="/api", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(messages.router, prefix="/api/messages", tags=["Messages"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["Conversations"])
app.include_router(health.router, prefix="/api/health", tags=["Health"])
app.include_router(realtime.router, tags=["Realtime"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
