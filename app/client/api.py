"""
Async client for the research catalog API.

Reads go through a FetchCache (read-through, TTL) and every request through a
RequestDeduplicator, both owned by the client instance. Writes invalidate the
cache tags of the resource family they touch.

    async with ResearchApiClient("http://localhost:8000", token="...") as client:
        companies = await client.companies.list()
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from app.client.cache import MISS, FetchCache, Tag, make_cache_key
from app.client.config import ClientSettings
from app.client.dedup import RequestDeduplicator, request_key
from app.client.errors import ApiError, NotFoundError, TransportError
from app.client.validation import (
    FilePayload,
    validate_comment,
    validate_company_fields,
    validate_icon,
    validate_report_fields,
    validate_report_file,
)
from app.schemas import CommentRead, CompanyRead, ReportRead

logger = logging.getLogger(__name__)

COMPANIES: Tag = ("companies", None)


def company_tag(company_id: str) -> Tag:
    return ("company", company_id)


def reports_tag(company_id: str) -> Tag:
    return ("reports", company_id)


def comments_tag(report_id: str) -> Tag:
    return ("comments", report_id)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.text or response.reason_phrase


def unwrap_envelope(response: httpx.Response) -> Any:
    """Return ``data`` from a success envelope; raise ApiError for anything else."""
    if not response.is_success:
        error_cls = NotFoundError if response.status_code == 404 else ApiError
        raise error_cls(_error_message(response), status=response.status_code, body=response.text)
    try:
        payload = response.json()
    except ValueError as exc:
        raise ApiError("Response is not JSON", status=response.status_code, body=response.text) from exc
    if not isinstance(payload, dict) or not payload.get("success"):
        message = payload.get("error") if isinstance(payload, dict) else None
        raise ApiError(message or "API request failed", status=response.status_code, body=response.text)
    return payload.get("data")


def _parse(model, data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ApiError(f"Unexpected {model.__name__} payload: {exc}") from exc


def _parse_list(model, data: Any) -> list:
    return [_parse(model, item) for item in (data or [])]


def _order_payload(updates: Iterable[Any]) -> List[Dict[str, Any]]:
    payload = []
    for update in updates:
        if isinstance(update, dict):
            payload.append({"id": update["id"], "order": int(update["order"])})
        else:
            payload.append({"id": update.id, "order": int(update.order)})
    return payload


class ResearchApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        cache: Optional[FetchCache] = None,
        deduplicator: Optional[RequestDeduplicator] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or ClientSettings()
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.token = token if token is not None else settings.token
        self.cache = cache if cache is not None else FetchCache(ttl=settings.cache_ttl_seconds)
        self.deduplicator = deduplicator if deduplicator is not None else RequestDeduplicator()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.http_timeout)

        self.companies = CompanyApi(self)
        self.reports = ReportApi(self)
        self.comments = CommentApi(self)

    async def __aenter__(self) -> "ResearchApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.cache.clear()
        self.deduplicator.clear()
        if self._owns_http:
            await self._http.aclose()

    def _headers(self, multipart: bool = False) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        # Multipart bodies let httpx set Content-Type with the boundary.
        if not multipart:
            headers["Content-Type"] = "application/json"
        return headers

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return unwrap_envelope(response)

    async def get(self, path: str, cache_key: Optional[str] = None, tags: Sequence[Tag] = ()) -> Any:
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not MISS:
                return cached

        url = self.url(path)
        generation = self.cache.generation

        async def fetch() -> Any:
            data = await self._send("GET", url, headers=self._headers())
            if cache_key is not None:
                self.cache.set(cache_key, data, tags=tags, generation=generation)
            return data

        # A read issued after an invalidation never joins one started before it.
        key = request_key("GET", url) + (generation,)
        return await self.deduplicator.run(key, fetch)

    async def mutate(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, tuple]] = None,
        invalidates: Sequence[Tag] = (),
    ) -> Any:
        url = self.url(path)
        multipart = files is not None
        key = None if multipart else request_key(method, url, json)
        kwargs: Dict[str, Any] = {"headers": self._headers(multipart=multipart)}
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = data
        if files is not None:
            kwargs["files"] = files

        self.cache.invalidate(*invalidates)
        try:
            return await self.deduplicator.run(key, lambda: self._send(method, url, **kwargs))
        finally:
            # Reads that raced the write must not survive it.
            self.cache.invalidate(*invalidates)

    async def init_sample_data(self) -> int:
        created = await self.mutate("POST", "/init-sample-data", invalidates=[COMPANIES])
        return int(created or 0)


class CompanyApi:
    def __init__(self, client: ResearchApiClient):
        self._client = client

    async def list(self) -> List[CompanyRead]:
        data = await self._client.get("/companies", make_cache_key("companies.list"), [COMPANIES])
        return _parse_list(CompanyRead, data)

    async def get(self, company_id: str) -> CompanyRead:
        data = await self._client.get(
            f"/companies/{company_id}",
            make_cache_key("companies.get", {"id": company_id}),
            [COMPANIES, company_tag(company_id)],
        )
        return _parse(CompanyRead, data)

    async def create(self, name: str, code: str, type: str, description: str = "") -> CompanyRead:
        company_type = validate_company_fields(name, code, type)
        body = {"name": name.strip(), "code": code.strip(), "type": company_type.value, "description": description}
        data = await self._client.mutate("POST", "/companies", json=body, invalidates=[COMPANIES])
        return _parse(CompanyRead, data)

    async def update(self, company_id: str, name: str, code: str, type: str, description: str = "") -> CompanyRead:
        company_type = validate_company_fields(name, code, type)
        body = {"name": name.strip(), "code": code.strip(), "type": company_type.value, "description": description}
        data = await self._client.mutate(
            "PUT", f"/companies/{company_id}", json=body, invalidates=[COMPANIES, company_tag(company_id)]
        )
        return _parse(CompanyRead, data)

    async def delete(self, company_id: str) -> None:
        await self._client.mutate(
            "DELETE",
            f"/companies/{company_id}",
            invalidates=[COMPANIES, company_tag(company_id), reports_tag(company_id)],
        )

    async def update_order(self, updates: Iterable[Any]) -> None:
        await self._client.mutate(
            "POST", "/companies/reorder", json={"orderUpdates": _order_payload(updates)}, invalidates=[COMPANIES]
        )

    async def upload_icon(self, company_id: str, icon: FilePayload) -> CompanyRead:
        validate_icon(icon)
        data = await self._client.mutate(
            "POST",
            f"/companies/{company_id}/icon",
            files={"icon": icon.as_upload()},
            invalidates=[COMPANIES, company_tag(company_id)],
        )
        return _parse(CompanyRead, data)

    async def remove_icon(self, company_id: str) -> CompanyRead:
        data = await self._client.mutate(
            "DELETE", f"/companies/{company_id}/icon", invalidates=[COMPANIES, company_tag(company_id)]
        )
        return _parse(CompanyRead, data)


class ReportApi:
    def __init__(self, client: ResearchApiClient):
        self._client = client

    async def list(self, company_id: str) -> List[ReportRead]:
        data = await self._client.get(
            f"/companies/{company_id}/reports",
            make_cache_key("reports.list", {"companyId": company_id}),
            [reports_tag(company_id), company_tag(company_id)],
        )
        return _parse_list(ReportRead, data)

    async def upload(self, company_id: str, title: str, analyst: str, category: str, file: FilePayload) -> ReportRead:
        report_category = validate_report_fields(title, analyst, category)
        validate_report_file(file)
        data = await self._client.mutate(
            "POST",
            f"/companies/{company_id}/reports",
            data={"title": title.strip(), "analyst": analyst.strip(), "category": report_category.value},
            files={"file": (file.filename, file.content, file.content_type or "application/pdf")},
            invalidates=[reports_tag(company_id)],
        )
        return _parse(ReportRead, data)

    async def update(
        self,
        company_id: str,
        report_id: str,
        title: str,
        analyst: str,
        category: str,
        created_at: Optional[datetime] = None,
    ) -> ReportRead:
        report_category = validate_report_fields(title, analyst, category)
        body: Dict[str, Any] = {"title": title.strip(), "analyst": analyst.strip(), "category": report_category.value}
        if created_at is not None:
            body["createdAt"] = created_at.isoformat()
        data = await self._client.mutate(
            "PUT", f"/reports/{company_id}/{report_id}", json=body, invalidates=[reports_tag(company_id)]
        )
        return _parse(ReportRead, data)

    async def update_order(self, company_id: str, updates: Iterable[Any]) -> None:
        await self._client.mutate(
            "POST",
            f"/companies/{company_id}/reports/reorder",
            json={"orderUpdates": _order_payload(updates)},
            invalidates=[reports_tag(company_id)],
        )

    async def delete(self, company_id: str, report_id: str) -> None:
        await self._client.mutate(
            "DELETE",
            f"/reports/{company_id}/{report_id}",
            invalidates=[reports_tag(company_id), comments_tag(report_id)],
        )

    async def get_download_url(self, company_id: str, report_id: str) -> str:
        # Signed URLs expire, so they are never cached.
        data = await self._client.get(f"/reports/{company_id}/{report_id}/download")
        return data["downloadUrl"]


class CommentApi:
    def __init__(self, client: ResearchApiClient):
        self._client = client

    def _invalidates(self, company_id: str, report_id: str) -> List[Tag]:
        # Report listings embed comments.
        return [comments_tag(report_id), reports_tag(company_id)]

    async def list(self, company_id: str, report_id: str) -> List[CommentRead]:
        data = await self._client.get(
            f"/reports/{company_id}/{report_id}/comments",
            make_cache_key("comments.list", {"companyId": company_id, "reportId": report_id}),
            self._invalidates(company_id, report_id),
        )
        return _parse_list(CommentRead, data)

    async def create(self, company_id: str, report_id: str, content: str) -> List[CommentRead]:
        data = await self._client.mutate(
            "POST",
            f"/reports/{company_id}/{report_id}/comments",
            json={"content": validate_comment(content)},
            invalidates=self._invalidates(company_id, report_id),
        )
        return _parse_list(CommentRead, data)

    async def update(self, company_id: str, report_id: str, comment_id: str, content: str) -> List[CommentRead]:
        data = await self._client.mutate(
            "PUT",
            f"/reports/{company_id}/{report_id}/comments/{comment_id}",
            json={"content": validate_comment(content)},
            invalidates=self._invalidates(company_id, report_id),
        )
        return _parse_list(CommentRead, data)

    async def delete(self, company_id: str, report_id: str, comment_id: str) -> List[CommentRead]:
        data = await self._client.mutate(
            "DELETE",
            f"/reports/{company_id}/{report_id}/comments/{comment_id}",
            invalidates=self._invalidates(company_id, report_id),
        )
        return _parse_list(CommentRead, data)


__all__ = [
    "COMPANIES",
    "CommentApi",
    "CompanyApi",
    "ReportApi",
    "ResearchApiClient",
    "comments_tag",
    "company_tag",
    "reports_tag",
    "unwrap_envelope",
]
