# image_proxy/server.py

"""
HTTP surface of the proxy.
Every GET path except the health check is handed to the ImageProxy.
"""
import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

import anyio.to_thread
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from image_proxy.errors import (
    ConfigError,
    DimensionError,
    ImageProxyError,
    InvalidOptionError,
    NoRouteMatched,
    ProcessingError,
    SourceFetchError,
    SourceNotFoundError,
)
from image_proxy.proxy import ImageProxy

logger = logging.getLogger("image_proxy.server")

# Checked in order, so subclasses must come before their parents.
ERROR_STATUS = [
    (NoRouteMatched, HTTPStatus.NOT_FOUND),
    (SourceNotFoundError, HTTPStatus.NOT_FOUND),
    (InvalidOptionError, HTTPStatus.BAD_REQUEST),
    (SourceFetchError, HTTPStatus.BAD_GATEWAY),
    (DimensionError, HTTPStatus.BAD_GATEWAY),
    (ProcessingError, HTTPStatus.BAD_GATEWAY),
    (ConfigError, HTTPStatus.INTERNAL_SERVER_ERROR),
]


def status_for(error: Exception) -> HTTPStatus:
    for error_class, status in ERROR_STATUS:
        if isinstance(error, error_class):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


def error_response(status: HTTPStatus) -> PlainTextResponse:
    # Only the reason phrase goes to the client; details stay in the log.
    return PlainTextResponse(status.phrase, status_code=status.value)


def create_app(proxy: ImageProxy, thread_pool_size: int | None = None) -> FastAPI:
    """
    Builds the FastAPI application around a configured proxy.

    Args:
        proxy: The request orchestrator.
        thread_pool_size: Number of worker threads for the synchronous handler.
                          None keeps the AnyIO default.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if thread_pool_size:
            anyio.to_thread.current_default_thread_limiter().total_tokens = thread_pool_size
        yield

    app = FastAPI(title="Image Proxy", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/healthcheck", response_class=PlainTextResponse)
    def healthcheck() -> str:
        return "OK"

    # DEV: A plain `def` handler runs in the thread pool, so one request is one
    # blocking worker from route match to encoded response.
    @app.get("/{path:path}")
    def serve_image(path: str, request: Request) -> Response:
        params = request.query_params
        query = {key: params.getlist(key)[0] for key in params.keys()}
        try:
            route, image = proxy.handle(request.url.path, query)
        except ImageProxyError as e:
            status = status_for(e)
            logger.log(logging.INFO if status < 500 else logging.WARNING,
                       "%s %s -> %d: %s", request.method, request.url.path, status, e)
            return error_response(status)
        except Exception:
            logger.exception("Unexpected error serving %s", request.url.path)
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        headers = {"Cache-Control": route.cache_control} if route.cache_control else None
        return Response(content=image.data, media_type=image.mime_type, headers=headers)

    return app
