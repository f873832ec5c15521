import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Response, Request, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from starlette.convertors import PathConvertor, register_url_convertor
from sqlalchemy.exc import SQLAlchemyError

from message_service.config import settings
from message_service.storage import init_db, check_db_health, get_store, MessageStore
from message_service.utils import encode_header_id
from message_service.logging_utils import setup_logging, RequestLoggingMiddleware, log_message_data
from message_service.metrics import (
    record_message_write,
    record_message_lookup,
    start_metrics_server,
)
from message_service.schemas import (
    HealthResponse,
    ErrorResponse,
    MessageCreate,
    MessageResponse,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class AnyPathConvertor(PathConvertor):
    """Like "path", but also matches ids containing line breaks."""
    regex = r"[\s\S]*"


register_url_convertor("anypath", AnyPathConvertor())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database and create tables, start the metrics
      listener when METRICS_PORT is non-zero
    """
    init_db()
    if settings.METRICS_PORT:
        start_metrics_server(settings.METRICS_PORT)
    logger.info(f"Message store backend: {settings.STORE_BACKEND}")
    yield


app = FastAPI(
    title="Message API",
    description="Stores and serves {id, text} messages",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Storage failures (lost connection, duplicate primary key, ...) are not
    retried; they surface as a generic 500.
    """
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "internal server error"},
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - 200 only if the DB is reachable and the messages
    table exists, otherwise 503.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Message Routes
# =============================================================================

@app.get("/", response_model=List[MessageResponse])
def list_messages(store: MessageStore = Depends(get_store)) -> List[MessageResponse]:
    """
    Return every stored message. No ordering, no pagination.
    """
    messages = store.list_all()
    logger.info(f"GET /: returned {len(messages)} messages")
    return messages


# Ids may contain "/" and line breaks. "/" itself is served by
# list_messages above and /health/* is matched first.
@app.get(
    "/{message_id:anypath}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Message not found"}},
)
def get_message(message_id: str, store: MessageStore = Depends(get_store)) -> MessageResponse:
    """
    Look up a message by exact id. Unknown ids return 404.
    """
    message = store.find_by_id(message_id)
    record_message_lookup(found=message is not None)

    if message is None:
        logger.info(f"Message not found: {message_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="message not found"
        )

    return message


@app.post(
    "/",
    response_class=Response,
    responses={
        422: {"description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
def create_message(
    request: Request,
    message: MessageCreate,
    store: MessageStore = Depends(get_store),
) -> Response:
    """
    Store a message. A random id is assigned when the body has none.

    The response body is empty; the stored id is returned percent-encoded
    in the X-Message-ID header.
    """
    try:
        stored = store.insert(message)
    except SQLAlchemyError:
        record_message_write("error")
        log_message_data(request=request, message_id=message.id, result="error")
        raise

    record_message_write("created")
    log_message_data(request=request, message_id=stored.id, result="created")
    logger.info(f"Message stored: {stored.id}")

    return Response(
        status_code=status.HTTP_200_OK,
        headers={"X-Message-ID": encode_header_id(stored.id)},
    )
