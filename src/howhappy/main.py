"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from howhappy.config import load_config
from howhappy.container import Container
from howhappy.exceptions import PipelineError, RequestValidationFailed
from howhappy.response_models import ErrorBody, ErrorDetail
from howhappy.routes import responses_router

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5


def _error_response(
    status_code: int, code: str, message: str, retryable: bool = False
) -> JSONResponse:
    body = ErrorBody(error=ErrorDetail(code=code, message=message))
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if retryable else None
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    logger.info(
        "Request failed",
        extra={"path": request.url.path, "code": exc.code, "status_code": exc.status_code},
    )
    return _error_response(exc.status_code, exc.code, exc.message, exc.retryable)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    return await _pipeline_error_handler(
        request, RequestValidationFailed("Invalid request: " + ", ".join(fields))
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return _error_response(500, "internal_error", "Internal server error")


def create_app(container: Container | None = None) -> FastAPI:
    """
    Builds the API.

    With no container one is built from the environment when the app starts
    and closed when it stops. An injected container is opened but left for
    the caller to close.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = container is None
        app.state.container = Container.from_config(load_config()) if owned else container
        app.state.container.open()
        logger.info("API started")
        try:
            yield
        finally:
            if owned:
                app.state.container.close()

    app = FastAPI(title="HowHappy Response API", lifespan=lifespan)
    app.include_router(responses_router)
    app.add_exception_handler(PipelineError, _pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
