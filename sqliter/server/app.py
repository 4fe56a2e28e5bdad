"""FastAPI application: JSON API handlers, static bundle and SPA fallback."""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from sqliter.browser import RowChange, SQLiteBrowser, normalise_sort_direction, parse_filters
from sqliter.shared.config import ServerSettings
from sqliter.shared.exceptions import (
    ConstraintError,
    DatabaseBusyError,
    DatabaseError,
    QueryError,
    ReadOnlyDatabaseError,
    SQLiterError,
    TableNotFoundError,
    ValidationError,
)
from sqliter.shared.logging import Logger, get_logger

from .models import (
    BulkDeleteRequest,
    BulkUpdateRequest,
    DeleteRequest,
    ExecuteSQLRequest,
    InsertRequest,
    UpdateRequest,
)

# First match wins, so subclasses come before their bases.
_STATUS_BY_ERROR: tuple[tuple[type[SQLiterError], int], ...] = (
    (TableNotFoundError, 404),
    (ValidationError, 400),
    (ConstraintError, 400),
    (QueryError, 400),
    (DatabaseBusyError, 503),
    (ReadOnlyDatabaseError, 403),
    (DatabaseError, 500),
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def status_for(exc: SQLiterError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def create_app(
    browser: SQLiteBrowser,
    settings: ServerSettings,
    *,
    logger: Logger | None = None,
) -> FastAPI:
    """Build the app around an already-open browser; the app closes it on shutdown."""
    log = logger or get_logger(scope="server")
    static_dir = Path(settings.static_dir)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info(f"Serving {browser.filename}")
        try:
            yield
        finally:
            browser.close()
            log.debug("Database connection closed")

    app = FastAPI(title="SQLiter", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Error mapping

    @app.exception_handler(SQLiterError)
    async def _domain_error(_: Request, exc: SQLiterError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            log.error(f"{type(exc).__name__}: {exc}")
        else:
            log.debug(f"{type(exc).__name__}: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=status)

    @app.exception_handler(RequestValidationError)
    async def _request_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": _describe_validation(exc)}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404 and request.method in {"GET", "HEAD"}:
            fallback = _static_response(static_dir, request.url.path)
            if fallback is not None:
                return fallback
        return JSONResponse(
            {"error": str(exc.detail).lower()},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    # ------------------------------------------------------------------
    # Introspection

    @app.get("/api/info")
    def get_info() -> dict[str, str]:
        return browser.info()

    @app.get("/api/tables")
    def get_tables() -> dict[str, Any]:
        return {"tables": [table.to_dict() for table in browser.list_tables()]}

    @app.get("/api/tables/{table}/schema")
    def get_table_schema(table: str) -> dict[str, Any]:
        return {"columns": [column.to_dict() for column in browser.get_schema(table)]}

    # ------------------------------------------------------------------
    # Reads

    @app.get("/api/tables/{table}/data")
    def get_table_data(
        table: str,
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
        offset: int = Query(0, ge=0),
        sort_column: str | None = None,
        sort_direction: str | None = None,
        filters: str | None = None,
        where_clause: str | None = None,
    ) -> dict[str, Any]:
        normalise_sort_direction(sort_direction)
        data = browser.get_table_data(
            table,
            limit=limit,
            offset=offset,
            sort_column=sort_column,
            sort_direction=sort_direction,
            filters=parse_filters(filters),
            where_clause=where_clause,
        )
        return data.to_dict()

    @app.get("/api/tables/{table}/export/csv")
    def export_table_csv(
        table: str,
        sort_column: str | None = None,
        sort_direction: str | None = None,
        filters: str | None = None,
        where_clause: str | None = None,
    ) -> StreamingResponse:
        normalise_sort_direction(sort_direction)
        chunks = browser.export_csv(
            table,
            sort_column=sort_column,
            sort_direction=sort_direction,
            filters=parse_filters(filters),
            where_clause=where_clause,
        )
        filename = _UNSAFE_FILENAME_CHARS.sub("_", table) + "_export.csv"
        return StreamingResponse(
            chunks,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    # ------------------------------------------------------------------
    # Writes

    @app.post("/api/tables/{table}/rows", status_code=201)
    def insert_row(table: str, request: InsertRequest) -> dict[str, Any]:
        browser.insert_row(table, request.data)
        return {"message": "row inserted successfully"}

    @app.put("/api/tables/{table}/rows")
    def update_row(table: str, request: UpdateRequest) -> dict[str, Any]:
        affected = browser.update_row(table, request.data, request.where)
        return {"message": "row updated successfully", "rowsAffected": affected}

    @app.delete("/api/tables/{table}/rows")
    def delete_row(table: str, request: DeleteRequest) -> dict[str, Any]:
        affected = browser.delete_row(table, request.where)
        return {"message": "row deleted successfully", "rowsAffected": affected}

    @app.put("/api/tables/{table}/rows/bulk")
    def bulk_update_rows(table: str, request: BulkUpdateRequest) -> dict[str, Any]:
        changes = [RowChange(data=item.data, where=item.where) for item in request.changes]
        affected = browser.bulk_update(table, changes)
        return {"message": f"{len(changes)} row(s) updated successfully", "rowsAffected": affected}

    @app.post("/api/tables/{table}/rows/bulk-delete")
    def bulk_delete_rows(table: str, request: BulkDeleteRequest) -> dict[str, Any]:
        affected = browser.bulk_delete(table, request.where)
        return {"message": f"{len(request.where)} row(s) deleted successfully", "rowsAffected": affected}

    @app.post("/api/sql/execute")
    def execute_sql(request: ExecuteSQLRequest) -> dict[str, Any]:
        return browser.execute_sql(request.sql).to_dict()

    # ------------------------------------------------------------------
    # Frontend bundle

    if (static_dir / "assets").is_dir():
        app.mount("/assets", StaticFiles(directory=static_dir / "assets"), name="assets")

    @app.get("/", include_in_schema=False)
    def index() -> Response:
        response = _static_response(static_dir, "/")
        if response is None:
            raise StarletteHTTPException(status_code=404)
        return response

    return app


def _static_response(static_dir: Path, path: str) -> Response | None:
    """Serve a top-level bundle file or the SPA entry document for ``path``.

    Returns None for API and asset paths so they keep a plain 404.
    """
    if path == "/api" or path.startswith("/api/") or path == "/assets" or path.startswith("/assets/"):
        return None
    relative = path.lstrip("/")
    if relative and "/" not in relative:
        candidate = static_dir / relative
        if candidate.is_file():
            return FileResponse(candidate)
        if Path(relative).suffix:
            return None
    index = static_dir / "index.html"
    if not index.is_file():
        return None
    return FileResponse(index, media_type="text/html")


def _describe_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ())]
    message = first.get("msg", "invalid value")
    if location and location[0] == "query" and len(location) > 1:
        return f"invalid {location[-1]} parameter: {message}"
    if location and location[0] == "body":
        field = ".".join(location[1:]) or "body"
        return f"invalid request body ({field}): {message}"
    return message
