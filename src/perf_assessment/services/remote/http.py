"""Async REST client for a remote assessment API with retries."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from perf_assessment.core.config import AssessmentConfig
from perf_assessment.core.errors import (
    AuthenticationError,
    MissingMetricsError,
    NotFoundError,
    RecordValidationError,
    TransientError,
)
from perf_assessment.models import (
    AssessmentRecord,
    ImportResult,
    RecordCreate,
    RecordFilter,
    RecordPage,
    RecordUpdate,
    TableExport,
    to_naive_utc,
)
from perf_assessment.scoring import parse_csv_rows

from .base import RemoteStore

logger = structlog.get_logger()

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')

T = TypeVar("T")


class _ServerError(Exception):
    """5xx response; retried before surfacing as TransientError."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _message(response: httpx.Response) -> str:
    data = _json_body(response)
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}: {response.reason_phrase}"


def record_from_json(data: dict[str, Any]) -> AssessmentRecord:
    """Convert an API assessment document into an AssessmentRecord."""
    record = AssessmentRecord.model_validate(
        {
            "id": data.get("_id") or data["id"],
            "owner_id": data.get("userId", ""),
            "subject_name": data["employeeName"],
            "assessment_date": data["assessmentDate"],
            "metrics": data.get("metrics", {}),
            "created_at": data.get("createdAt") or data["assessmentDate"],
            "updated_at": data.get("updatedAt") or data["assessmentDate"],
            "version": data.get("version", 1),
        }
    )
    record.assessment_date = to_naive_utc(record.assessment_date)
    record.created_at = to_naive_utc(record.created_at)
    record.updated_at = to_naive_utc(record.updated_at)
    return record


def _filter_params(flt: RecordFilter) -> dict[str, Any]:
    params: dict[str, Any] = {"page": flt.page, "limit": flt.page_size}
    if flt.subject_name_contains:
        params["employeeName"] = flt.subject_name_contains
    if flt.date_from is not None:
        params["startDate"] = flt.date_from.isoformat()
    if flt.date_to is not None:
        params["endDate"] = flt.date_to.isoformat()
    return params


def _assessment(data: Any) -> AssessmentRecord:
    return record_from_json(data["assessment"])


def _export_count(text: str) -> int:
    """Records in an export body: 1 for the two-column form, else one per data row."""
    rows = [row for row in parse_csv_rows(text) if any(cell.strip() for cell in row)]
    if not rows:
        return 0
    if rows[0][0].strip().lower() == "categories":
        return 1
    return len(rows) - 1


def _decode(response: httpx.Response, convert: Callable[[Any], T]) -> T:
    """Convert a JSON body, treating an unreadable or malformed body as a server failure."""
    try:
        return convert(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("api_bad_response", status=response.status_code, error=str(e))
        msg = f"Unexpected response from assessment API: {e}"
        raise TransientError(msg) from e


def _decode_text(response: httpx.Response, convert: Callable[[str], T]) -> T:
    try:
        return convert(response.content.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning("api_bad_response", status=response.status_code, error=str(e))
        msg = f"Unexpected response from assessment API: {e}"
        raise TransientError(msg) from e


class HttpRemoteStore(RemoteStore):
    """Remote store speaking the assessment REST API with bearer-token auth."""

    def __init__(
        self,
        base_url: str,
        token: str | None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_wait: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the REST client.

        Args:
            base_url: API root, e.g. ``http://localhost:5000/api``.
            token: Bearer token. None means unauthenticated.
            timeout: Request timeout in seconds.
            retry_attempts: Attempts made for 5xx responses.
            retry_wait: Multiplier for exponential backoff between attempts.
            transport: Optional httpx transport (used in tests).
        """
        self.token = token
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    @classmethod
    def from_config(
        cls, config: AssessmentConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> HttpRemoteStore:
        """Build a client for the configured API.

        A missing token is not an error here; requests fail with
        AuthenticationError instead.
        """
        return cls(
            config.api_base_url,
            config.resolve_api_token(),
            timeout=config.request_timeout,
            transport=transport,
        )

    async def _send_once(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(
                method,
                path,
                headers={"Authorization": f"Bearer {self.token}"},
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise TransientError(f"Could not reach assessment API: {e}") from e
        if response.status_code >= 500:
            raise _ServerError(response)
        return response

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and map failure statuses onto the error taxonomy."""
        if not self.token:
            raise AuthenticationError()

        logger.debug("api_call", method=method, path=path)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=self.retry_wait, max=30),
                retry=retry_if_exception_type(_ServerError),
                reraise=True,
            ):
                with attempt:
                    response = await self._send_once(method, path, **kwargs)
        except _ServerError as e:
            raise TransientError(_message(e.response)) from e

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError(_message(response))
        if status == 404:
            raise NotFoundError(_message(response))
        if status in (400, 422):
            body = _json_body(response)
            if isinstance(body, dict) and body.get("missing"):
                raise MissingMetricsError(body["missing"])
            raise RecordValidationError(_message(response))
        if status >= 400:
            raise TransientError(_message(response))
        return response

    async def list_records(self, flt: RecordFilter | None = None) -> RecordPage:
        flt = flt or RecordFilter()
        response = await self._request("GET", "/assessments", params=_filter_params(flt))

        def _page(data: Any) -> RecordPage:
            pagination = data.get("pagination", {})
            return RecordPage(
                records=[record_from_json(item) for item in data.get("assessments", [])],
                total=pagination.get("total", 0),
                page=pagination.get("page", flt.page),
                page_size=pagination.get("limit", flt.page_size),
            )

        return _decode(response, _page)

    async def get(self, record_id: str) -> AssessmentRecord:
        response = await self._request("GET", f"/assessments/{record_id}")
        return _decode(response, record_from_json)

    async def create(self, payload: RecordCreate) -> AssessmentRecord:
        body: dict[str, Any] = {"employeeName": payload.subject_name, "metrics": payload.metrics}
        if payload.assessment_date is not None:
            body["assessmentDate"] = payload.assessment_date.isoformat()
        response = await self._request("POST", "/assessments", json=body)
        return _decode(response, _assessment)

    async def update(self, record_id: str, changes: RecordUpdate) -> AssessmentRecord:
        data = changes.model_dump(exclude_unset=True)
        body: dict[str, Any] = {}
        if data.get("subject_name") is not None:
            body["employeeName"] = data["subject_name"]
        if data.get("assessment_date") is not None:
            body["assessmentDate"] = data["assessment_date"].isoformat()
        if data.get("metrics") is not None:
            body["metrics"] = data["metrics"]
        response = await self._request("PUT", f"/assessments/{record_id}", json=body)
        return _decode(response, _assessment)

    async def delete(self, record_id: str) -> None:
        await self._request("DELETE", f"/assessments/{record_id}")

    async def import_table(self, raw_text: str, subject_name: str | None = None) -> ImportResult:
        response = await self._request(
            "POST",
            "/assessments/import-csv",
            files={"file": ("assessment.csv", raw_text.encode("utf-8"), "text/csv")},
            data={"employeeName": subject_name or ""},
        )
        return _decode(
            response,
            lambda data: ImportResult(
                record=_assessment(data),
                warnings=list(data.get("errors") or []),
            ),
        )

    async def export_table(
        self, flt: RecordFilter | None = None, ids: Sequence[str] | None = None
    ) -> TableExport:
        if ids:
            params: dict[str, Any] = {"ids": ",".join(ids)}
        else:
            params = _filter_params(flt or RecordFilter())
            params.pop("page")
            params.pop("limit")
        response = await self._request("GET", "/assessments/export-csv", params=params)
        match = _FILENAME_RE.search(response.headers.get("content-disposition", ""))
        filename = match.group(1) if match else "assessments_export.csv"
        count = _decode_text(response, _export_count)
        return TableExport(filename=filename, content=response.content, count=count)

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()
