"""Starlette application exposing the file operations over REST and SSE.

Endpoints:
    GET    /api/files                  - List a folder (folderId, pageSize, nextPageToken)
    GET    /api/files/{item_id}        - Item metadata
    POST   /api/files                  - Upload, broadcasts file_created
    DELETE /api/files/{item_id}        - Delete, broadcasts file_deleted
    POST   /api/files/{item_id}/download - Download to disk or as raw bytes
    GET    /events                     - SSE push channel

Every route requires ``Authorization: Bearer <token>``.
"""

import base64
import json
import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import quote

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from onedrive_files_mcp.auth import authenticate, extract_bearer_token
from onedrive_files_mcp.config import ServerConfig
from onedrive_files_mcp.errors import FilesError, ValidationError
from onedrive_files_mcp.formatting import format_file_size, format_page_markdown
from onedrive_files_mcp.models import DriveItem, PushEvent, utc_timestamp
from onedrive_files_mcp.schemas import (
    DownloadFileBody,
    DownloadFileRequest,
    ListFilesQuery,
    UploadFileRequest,
    parse_model,
)
from onedrive_files_mcp.services import FileService
from onedrive_files_mcp.web.events import EventBroadcaster

logger = logging.getLogger(__name__)


# =============================================================================
# Envelopes
# =============================================================================


def success_response(data: Any, status_code: int = 200, **metadata: Any) -> JSONResponse:
    """Wrap a payload in the success envelope."""
    return JSONResponse(
        {
            "status": "success",
            "data": data,
            "metadata": {**metadata, "timestamp": utc_timestamp()},
        },
        status_code=status_code,
    )


def error_response(
    message: str, status_code: int, code: str, details: Any = None
) -> JSONResponse:
    """Wrap an error in the error envelope; ``details`` is omitted when None."""
    body: dict[str, Any] = {"status": "error", "error": message, "code": code}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


def _is_development(request: Request) -> bool:
    config: ServerConfig = request.app.state.config
    return config.is_development


def _format_traceback(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


async def handle_files_error(request: Request, exc: FilesError) -> Response:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    details = None
    if _is_development(request):
        details = exc.details if exc.details is not None else _format_traceback(exc)
    return error_response(exc.message, exc.status_code, exc.code, details)


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    if exc.status_code == 404:
        return error_response("Endpoint not found", 404, "not_found")
    return error_response(str(exc.detail), exc.status_code, "http_error")


async def handle_unexpected_error(request: Request, exc: Exception) -> Response:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    details = _format_traceback(exc) if _is_development(request) else None
    return error_response("Internal server error", 500, "internal_error", details)


# =============================================================================
# Request helpers
# =============================================================================


def _require_token(request: Request) -> str:
    token = extract_bearer_token(request.headers.get("authorization"))
    logger.info(f"{request.method} {request.url.path} with token suffix: {token.suffix}")
    return authenticate(token)


async def _json_body(request: Request, required: bool = True) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        if required:
            raise ValidationError("Request body is required")
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise ValidationError("Invalid JSON in request body") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _service(request: Request) -> FileService:
    return request.app.state.service


def _broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def content_disposition(file_name: str) -> str:
    """Attachment header with an ASCII ``filename`` and a UTF-8 ``filename*`` (RFC 6266)."""
    fallback = file_name.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


def serialize_list_item(item: DriveItem) -> dict[str, Any]:
    return {
        "type": "file" if item.is_file else "folder",
        "id": item.id,
        "name": item.name,
        "url": item.web_url,
        "size": format_file_size(item.size) if item.is_file else None,
        "item_count": item.folder.child_count if item.folder is not None else None,
        "created": item.created_date_time,
        "modified": item.last_modified_date_time,
    }


# =============================================================================
# Routes
# =============================================================================


async def list_files(request: Request) -> Response:
    access_token = _require_token(request)
    query = parse_model(ListFilesQuery, dict(request.query_params), "query parameters")

    page = await _service(request).list_files(
        access_token,
        folder_id=query.folder_id,
        page_size=query.page_size,
        next_page_token=query.next_page_token,
    )

    return success_response(
        {
            "items": [serialize_list_item(item) for item in page.items],
            "pagination": {
                "total_items": len(page.items),
                "page_size": query.page_size,
                "has_more": page.has_more,
                "next_page_token": page.next_page_token,
            },
        },
        formatted_text=format_page_markdown(page),
    )


async def get_file(request: Request) -> Response:
    access_token = _require_token(request)
    item = await _service(request).get_item(access_token, request.path_params["item_id"])
    return success_response(item.to_api())


async def upload_file(request: Request) -> Response:
    access_token = _require_token(request)
    upload = parse_model(UploadFileRequest, await _json_body(request), "upload request")

    result = await _service(request).upload_file(access_token, upload)
    data = result.to_api()
    _broadcaster(request).broadcast(PushEvent(type="file_created", data=data))

    return success_response(data, status_code=201, message="File uploaded successfully")


async def delete_file(request: Request) -> Response:
    access_token = _require_token(request)
    item_id = request.path_params["item_id"]

    await _service(request).delete_file(access_token, item_id)
    _broadcaster(request).broadcast(PushEvent(type="file_deleted", data={"id": item_id}))

    return success_response({"id": item_id}, message="File deleted successfully")


async def download_file(request: Request) -> Response:
    access_token = _require_token(request)
    body = parse_model(
        DownloadFileBody, await _json_body(request, required=False), "download request"
    )
    download = DownloadFileRequest(
        file_id=request.path_params["item_id"],
        file_name=body.file_name,
        output_path=body.output_path,
    )

    result = await _service(request).download_file(access_token, download)

    if result.saved_path is not None:
        return success_response(result.to_api(), message="File downloaded successfully")

    content = base64.b64decode(result.to_api()["content"])
    return Response(
        content,
        media_type=result.mime_type,
        headers={"Content-Disposition": content_disposition(result.file_name)},
    )


async def events(request: Request) -> Response:
    _require_token(request)
    broadcaster = _broadcaster(request)
    channel = broadcaster.register()
    return StreamingResponse(
        broadcaster.stream(channel),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# =============================================================================
# Application
# =============================================================================


def create_http_app(
    service: FileService,
    broadcaster: EventBroadcaster,
    config: ServerConfig,
) -> Starlette:
    """Create the Starlette ASGI app.

    Args:
        service: File operations facade.
        broadcaster: Push registry shared with any other broadcasting component.
        config: Server configuration; development mode adds error details.

    Returns:
        Configured Starlette application.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("HTTP server started")
        try:
            yield
        finally:
            logger.info("HTTP server shutting down")
            broadcaster.close_all()

    routes = [
        Route("/api/files", list_files, methods=["GET"]),
        Route("/api/files", upload_file, methods=["POST"]),
        Route("/api/files/{item_id}", get_file, methods=["GET"]),
        Route("/api/files/{item_id}", delete_file, methods=["DELETE"]),
        Route("/api/files/{item_id}/download", download_file, methods=["POST"]),
        Route("/events", events, methods=["GET"]),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["*"],
        )
    ]

    app = Starlette(
        routes=routes,
        middleware=middleware,
        debug=False,
        exception_handlers={
            FilesError: handle_files_error,
            HTTPException: handle_http_exception,
            Exception: handle_unexpected_error,
        },
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.broadcaster = broadcaster
    app.state.config = config
    return app
