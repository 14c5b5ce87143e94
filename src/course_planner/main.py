import json
import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import (
    AuthenticationRequired,
    BatchTooLarge,
    InfrastructureError,
    StoreError,
    StoreUnavailableError,
    UnknownModel,
)
from .routers import records as records_router
from .routers import todos as todos_router
from .settings import get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "Batch creation of Todo items with per-item failure reporting."},
    {"name": "models", "description": "Schema-driven access to planner records (states, universities, courses, ...)."},
]

_settings = get_settings()

logger = logging.getLogger("course_planner.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=_settings.log_level)

app = FastAPI(
    title="Course Planner Backend",
    description="Backend API for the course planner: catalog records, students and batch Todo creation.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api/"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                },
                ensure_ascii=True,
            ),
        )
    return response


def _error(status_code: int, exc: Exception, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(AuthenticationRequired)
async def authentication_required_handler(request: Request, exc: AuthenticationRequired) -> JSONResponse:
    return _error(401, exc)


@app.exception_handler(BatchTooLarge)
async def batch_too_large_handler(request: Request, exc: BatchTooLarge) -> JSONResponse:
    return _error(413, exc)


@app.exception_handler(UnknownModel)
async def unknown_model_handler(request: Request, exc: UnknownModel) -> JSONResponse:
    return _error(404, exc)


@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError) -> JSONResponse:
    return _error(503, exc, headers={"Retry-After": "5"})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """
    Store faults outside the batch path: 503 when unreachable, 502 otherwise.
    """
    logger.error("Record store error on %s: %s", request.url.path, exc)
    if isinstance(exc, StoreUnavailableError):
        return _error(503, exc, headers={"Retry-After": "5"})
    return _error(502, exc)


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": get_settings().persistence_backend}


app.include_router(todos_router.router)
app.include_router(records_router.router)
