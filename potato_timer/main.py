"""
Potato Timer - Main Application
Goals, streaks and the motivation feed behind one FastAPI app.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from potato_timer import __version__
from potato_timer.api import auth, goals, motivations, tags
from potato_timer.config import settings
from potato_timer.db import create_db_and_tables, engine
from potato_timer.errors import CoreError, StoreError

logger = logging.getLogger("potato_timer")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    await create_db_and_tables()
    logger.info("startup", extra={"env": settings.env, "version": __version__})
    yield
    await engine.dispose()


app = FastAPI(title="Potato Timer", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("request_failed", extra={"path": request.url.path, "retryable": exc.retryable})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Routing 404/405s come from Starlette; FastAPI's HTTPException subclasses it
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content = {"success": False, "error": "http_error", "message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    content = {
        "success": False,
        "error": "validation_error",
        "message": "invalid request",
        "details": jsonable_encoder(exc.errors()),
    }
    return JSONResponse(status_code=422, content=content)


app.include_router(auth.router, prefix="/api")
app.include_router(goals.router, prefix="/api")
app.include_router(motivations.router, prefix="/api")
app.include_router(tags.router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}
