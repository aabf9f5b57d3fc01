"""
Bible Marathon FastAPI Application Main
"""
import logging
from contextlib import asynccontextmanager
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from marathon.api.responses import error_response, success_response
from marathon.api.routes import bible, progress, readers, reports, stats
from marathon.api.routes import marathon as marathon_routes
from marathon.core.config import settings
from marathon.core.exceptions import MarathonException
from marathon.db.sqlite import close_db_connection, initialise_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

initialise_db()

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_db_connection()

app = FastAPI(
    title="Bible Marathon API",
    description="Reading progress and statistics for the Bible marathon",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(MarathonException)
async def marathon_exception_handler(request: Request, exc: MarathonException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.detail}")
    return error_response(exc.status_code, exc.detail)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data", errors)

API_PREFIX = "/api/bible"

@app.get(f"{API_PREFIX}/health", tags=["Health"])
async def health():
    return success_response({"status": "ok", "app": settings.APP_NAME}, "API is running")

app.include_router(bible.router, prefix=API_PREFIX, tags=["Bible"])
app.include_router(readers.router, prefix=f"{API_PREFIX}/readers", tags=["Readers"])
app.include_router(progress.router, prefix=f"{API_PREFIX}/progress", tags=["Reading Progress"])
app.include_router(stats.router, prefix=f"{API_PREFIX}/stats", tags=["Statistics"])
app.include_router(reports.router, prefix=f"{API_PREFIX}/reports", tags=["Realtime Reports"])
app.include_router(marathon_routes.router, prefix=f"{API_PREFIX}/marathon", tags=["Marathon"])

if __name__ == "__main__":
    uvicorn.run("marathon.api.main:app", host="0.0.0.0", port=8000)
