import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import init_db
from app.dependencies import get_scheduler, get_session_store
from app.exceptions import QuizAppError, UpstreamError
from app.routes import quizzes, trial, submissions, leaderboards, realtime
from app.services.session_store import InMemorySessionStore
from app.utils.logging_config import configure_logging
from app.utils.websocket_manager import broadcaster

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

async def purge_trial_sessions(store: InMemorySessionStore, interval: int):
    """Sweep expired trial sessions that were never read again"""
    while True:
        await asyncio.sleep(interval)
        store.purge_expired()

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    broadcaster.start_background_tasks()
    scheduler = get_scheduler()
    await scheduler.reconcile()

    purge_task = None
    store = get_session_store()
    if isinstance(store, InMemorySessionStore):
        purge_task = asyncio.create_task(purge_trial_sessions(store, settings.cleanup_interval))

    yield

    if purge_task:
        purge_task.cancel()
    await scheduler.shutdown()
    broadcaster.stop_background_tasks()
    await broadcaster.close_all()

app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Scheduled quiz release, single-attempt scoring and ranked leaderboards",
    lifespan=lifespan,
)

# CORS middleware for cross-origin requests (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})

@app.exception_handler(QuizAppError)
async def quiz_app_error_handler(request: Request, exc: QuizAppError):
    if isinstance(exc, UpstreamError):
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.public_message)
    return error_response(exc.status_code, exc.message)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return error_response(400, message)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}")
    return error_response(500, "Internal Server Error")

# Include routers with prefixes and tags
app.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
app.include_router(trial.router, prefix="/trial", tags=["Instant Trial"])
app.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
app.include_router(leaderboards.router, prefix="/leaderboards", tags=["Leaderboards"])
app.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])

# Root endpoint
@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "version": app.version}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
