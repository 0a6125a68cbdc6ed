import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from firecache.api.routes import search
from firecache.config import settings
from firecache.errors import FireCacheError
from firecache.models.schemas import ErrorResponse, HealthResponse
from firecache.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Fire Cache starting; search service at {settings.search_service_url}")
    yield
    logger.info("Fire Cache shutting down")


app = FastAPI(
    title="Fire Cache",
    description="Streaming search answers over a search/scrape service",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(search.router)


@app.exception_handler(FireCacheError)
async def handle_known_error(request: Request, exc: FireCacheError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Search API error on {request.url.path}: {exc!r}\n{details}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Search failed",
            message=str(exc) or "Unknown error",
            details=details,
        ).model_dump(exclude_none=True),
    )


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", service="fire-cache")
