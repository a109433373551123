from __future__ import annotations

import json
import ssl
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar
from urllib import error, request
from urllib.parse import parse_qsl, quote

import certifi

from pdclient.config import ClientConfig
from pdclient.envelope import RawResponse, unwrap, unwrap_list
from pdclient.errors import PagerDutyApiError, PagerDutyValidationError
from pdclient.models import ListPage, Record
from pdclient.options import PageOptions, QueryOptions, encode_query

M = TypeVar("M", bound=Record)

LogFn = Callable[[Dict[str, Any]], None]

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100


@dataclass(frozen=True)
class Resource(Generic[M]):
    """A REST collection: its path, envelope keys and record type."""

    path: str
    singular: str
    plural: str
    model: Type[M]

    def item_path(self, resource_id: str) -> str:
        if not resource_id:
            raise PagerDutyValidationError(f"{self.singular} id is required.")
        return f"{self.path}/{quote(str(resource_id), safe='')}"

    def under(self, parent: "Resource[Any]", parent_id: str) -> "Resource[M]":
        return replace(self, path=parent.item_path(parent_id) + self.path)


def _api_error(status: int, body: bytes, request_id: Optional[str]) -> PagerDutyApiError:
    raw = body.decode("utf-8", errors="replace") if body else ""
    message = f"HTTP {status}"
    code: Optional[int] = None
    errors: List[Any] = []
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
            message = raw[:500]
        if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
            err = parsed["error"]
            code = err.get("code")
            message = str(err.get("message") or message)
            errors = list(err.get("errors") or [])
    return PagerDutyApiError(status_code=status, code=code, message=message, errors=errors, request_id=request_id)


class ResourceClient:
    def __init__(self, config: ClientConfig, logger: Optional[LogFn] = None):
        self.config = config
        self.logger = logger

    @staticmethod
    def _ssl_context() -> ssl.SSLContext:
        return ssl.create_default_context(cafile=certifi.where())

    def _emit_log(self, event: Dict[str, Any], logger_override: Optional[LogFn] = None) -> None:
        log_fn = logger_override or self.logger
        if not log_fn:
            return
        try:
            log_fn(event)
        except Exception:
            pass

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: str = "",
        body: Optional[Any] = None,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> RawResponse:
        url = f"{self.config.base_url}{path}"
        if query:
            url = f"{url}?{query}"
        payload = json.dumps(body).encode("utf-8") if body is not None else None
        req = request.Request(url=url, data=payload, headers=self.config.headers(), method=method)
        event: Dict[str, Any] = {
            "method": method,
            "path": path,
            "has_body": body is not None,
            "query_keys": sorted({key for key, _ in parse_qsl(query)}),
        }
        started = time.perf_counter()
        try:
            with request.urlopen(req, timeout=timeout or self.config.timeout, context=self._ssl_context()) as resp:
                raw = RawResponse(status=getattr(resp, "status", 200), body=resp.read(), headers=resp.headers or {})
        except error.HTTPError as exc:
            try:
                err_body = exc.read() or b""
            except Exception:
                err_body = b""
            finally:
                exc.close()
            request_id = exc.headers.get("X-Request-Id") if exc.headers else None
            api_err = _api_error(exc.code, err_body, request_id)
            self._emit_log({
                **event,
                "event": "http_error",
                "status_code": exc.code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "request_id": request_id,
                "error_code": api_err.code,
            }, logger_override=logger)
            raise api_err from exc
        except OSError as exc:
            self._emit_log({
                **event,
                "event": "network_error",
                "status_code": None,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "error": str(exc),
            }, logger_override=logger)
            raise
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if not 200 <= raw.status < 300:
            api_err = _api_error(raw.status, raw.body, raw.request_id)
            self._emit_log({
                **event,
                "event": "http_error",
                "status_code": raw.status,
                "duration_ms": duration_ms,
                "request_id": raw.request_id,
                "error_code": api_err.code,
            }, logger_override=logger)
            raise api_err
        self._emit_log({
            **event,
            "event": "http_request",
            "status_code": raw.status,
            "duration_ms": duration_ms,
            "request_id": raw.request_id,
        }, logger_override=logger)
        return raw

    def list_page(
        self,
        resource: Resource[M],
        options: Optional[QueryOptions] = None,
        *,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> ListPage[M]:
        if options is not None:
            options.validate()
        raw = self._request("GET", resource.path, query=encode_query(options), timeout=timeout, logger=logger)
        return unwrap_list(raw, resource.plural, resource.model)

    def list_all(
        self,
        resource: Resource[M],
        options: Optional[PageOptions] = None,
        *,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = DEFAULT_MAX_PAGES,
        max_items: Optional[int] = None,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> List[M]:
        """Fetch every page of ``resource``, following ``more`` with offset paging.

        Stops when the server reports no more results, a page comes back
        empty, or ``max_pages`` / ``max_items`` is reached. The page size is
        ``page_size``, else ``options.limit``, else ``DEFAULT_PAGE_SIZE``;
        ``max_pages=None`` removes the page cap.
        """
        base = options if options is not None else PageOptions()
        base.validate()
        size = page_size if page_size is not None else (base.limit or DEFAULT_PAGE_SIZE)
        if size <= 0:
            raise PagerDutyValidationError(f"page_size must be positive, got {size}")
        offset = base.offset or 0
        items: List[M] = []
        pages = 0
        while max_pages is None or pages < max_pages:
            page = self.list_page(
                resource,
                replace(base, limit=size, offset=offset),
                timeout=timeout,
                logger=logger,
            )
            pages += 1
            items.extend(page.items)
            if max_items is not None and len(items) >= max_items:
                return items[:max_items]
            if not page.more or not page.items:
                break
            offset += len(page.items)
        return items

    def get(
        self,
        resource: Resource[M],
        resource_id: str,
        options: Optional[QueryOptions] = None,
        *,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> M:
        if options is not None:
            options.validate()
        raw = self._request(
            "GET",
            resource.item_path(resource_id),
            query=encode_query(options),
            timeout=timeout,
            logger=logger,
        )
        return unwrap(raw, resource.singular, resource.model)

    def create(
        self,
        resource: Resource[M],
        record: M,
        *,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> M:
        body = {resource.singular: record.to_payload()}
        raw = self._request("POST", resource.path, body=body, timeout=timeout, logger=logger)
        return unwrap(raw, resource.singular, resource.model)

    def update(
        self,
        resource: Resource[M],
        resource_id: str,
        record: M,
        *,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> M:
        body = {resource.singular: record.to_payload()}
        raw = self._request("PUT", resource.item_path(resource_id), body=body, timeout=timeout, logger=logger)
        return unwrap(raw, resource.singular, resource.model)

    def delete(
        self,
        resource: Resource[Any],
        resource_id: str,
        *,
        timeout: Optional[float] = None,
        logger: Optional[LogFn] = None,
    ) -> None:
        self._request("DELETE", resource.item_path(resource_id), timeout=timeout, logger=logger)
