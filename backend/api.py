"""FastAPI entrypoint for consumption record endpoints."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from backend.factory import build_record_repository
from backend.reporting import CSV_MEDIA_TYPE, export_filename, export_transactions_csv
from backend.repositories.record_repository import RecordRepository
from backend.services.records_session import RecordsSession
from shared import config as _config
from shared.errors import (
    ConfigurationError,
    ConsumptionRecordsError,
    NetworkError,
    RequestError,
    SubmissionInProgressError,
    ValidationError,
)
from shared.models import LookupKind, SearchSpec, SortKey, TransactionCreateRequest


logger = logging.getLogger(__name__)


_STATUS_BY_ERROR: tuple[tuple[type[ConsumptionRecordsError], int], ...] = (
    (ConfigurationError, 503),
    (NetworkError, 502),
    (SubmissionInProgressError, 409),
    (ValidationError, 422),
    (RequestError, 400),
)


class SortRequest(BaseModel):
    key: SortKey


def _error_payload(exc: ConsumptionRecordsError | None) -> dict[str, str] | None:
    if exc is None:
        return None
    return {"type": type(exc).__name__, "message": str(exc)}


def _to_http_exception(exc: ConsumptionRecordsError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def get_session(request: Request) -> RecordsSession:
    return request.app.state.records_session


def create_app(repository: RecordRepository | None = None, *, load_on_startup: bool = True) -> FastAPI:
    """Build the API around one record repository instance."""

    session = RecordsSession(repository=repository or build_record_repository())

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if load_on_startup:
            try:
                session.repository.load()
            except ConsumptionRecordsError:
                logger.warning("records_initial_load_failed")
        yield

    app = FastAPI(title="Consumption Records API", lifespan=lifespan)
    app.state.records_session = session
    allow_origins = _config.cors_allow_origins()

    @app.middleware("http")
    async def log_http_requests(request: Request, call_next):
        """Log incoming requests, HTTP status codes and unexpected errors."""

        logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "http_request_failed method=%s path=%s",
                request.method,
                request.url.path,
            )
            raise

        logger.info(
            "http_response_sent method=%s path=%s status_code=%s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info("cors_allow_origins=%s", allow_origins)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        """Return a JSON 500 response for unhandled exceptions."""

        logger.exception(
            "unhandled_exception method=%s path=%s exception_type=%s message=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/health")
    def health() -> dict[str, str]:
        """Healthcheck endpoint."""

        return {"status": "ok"}

    @app.get("/config/status")
    def config_status() -> dict[str, Any]:
        missing = _config.missing_supabase_settings()
        return {
            "configured": not missing,
            "missing": missing,
            "instructions": _config.SETUP_INSTRUCTIONS if missing else None,
        }

    @app.post("/records/reload")
    def reload_records(session: RecordsSession = Depends(get_session)) -> Any:
        """Retry action behind the persistent load error banner."""

        try:
            session.repository.load()
        except ConsumptionRecordsError as exc:
            raise _to_http_exception(exc) from exc
        return jsonable_encoder({"page": session.records_page(), "load_error": None})

    @app.get("/records")
    def list_records(
        page: int | None = Query(default=None, ge=1),
        session: RecordsSession = Depends(get_session),
    ) -> Any:
        repository = session.repository
        return jsonable_encoder(
            {
                "page": session.records_page(page),
                "load_error": _error_payload(repository.load_error),
                "lookups": repository.lookups,
                "insert_in_flight": repository.insert_in_flight,
            }
        )

    @app.post("/records", status_code=201)
    def create_record(
        payload: TransactionCreateRequest,
        session: RecordsSession = Depends(get_session),
    ) -> Any:
        logger.info("records_create_received category=%s", payload.category)
        try:
            created = session.insert(payload)
        except ConsumptionRecordsError as exc:
            raise _to_http_exception(exc) from exc
        return jsonable_encoder(created)

    @app.delete("/records/{record_id}")
    def delete_record(record_id: int, session: RecordsSession = Depends(get_session)) -> Any:
        try:
            session.delete(record_id)
        except ConsumptionRecordsError as exc:
            raise _to_http_exception(exc) from exc
        return {"ok": True, "id": record_id}

    @app.post("/records/sort")
    def sort_records(payload: SortRequest, session: RecordsSession = Depends(get_session)) -> Any:
        return jsonable_encoder(session.sort_records(payload.key))

    @app.post("/search")
    def run_search(payload: SearchSpec, session: RecordsSession = Depends(get_session)) -> Any:
        try:
            results_page = session.search(payload)
        except ConsumptionRecordsError as exc:
            raise _to_http_exception(exc) from exc
        return jsonable_encoder({"results": results_page})

    @app.get("/search")
    def get_search_results(
        page: int | None = Query(default=None, ge=1),
        session: RecordsSession = Depends(get_session),
    ) -> Any:
        return jsonable_encoder({"results": session.search_page(page)})

    @app.post("/search/sort")
    def sort_search(payload: SortRequest, session: RecordsSession = Depends(get_session)) -> Any:
        return jsonable_encoder(session.sort_search(payload.key))

    @app.get("/search/export.csv")
    def export_search_csv(session: RecordsSession = Depends(get_session)) -> Response:
        content = export_transactions_csv(session.repository.search_results)
        if content is None:
            return Response(status_code=204)

        filename = export_filename()
        logger.info("search_export_generated filename=%s", filename)
        return Response(
            content=content.encode("utf-8"),
            media_type=CSV_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/lookups/{kind}")
    def list_lookups(kind: LookupKind, session: RecordsSession = Depends(get_session)) -> Any:
        return jsonable_encoder(session.repository.lookups.items_for(kind))

    return app
