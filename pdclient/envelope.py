from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from pdclient.errors import PagerDutyDecodeError, PagerDutyMissingFieldError
from pdclient.models import ListPage, Record

M = TypeVar("M", bound=Record)


@dataclass(frozen=True)
class RawResponse:
    """A fully read HTTP response; the underlying stream is already closed."""

    status: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def request_id(self) -> Optional[str]:
        return self.headers.get("X-Request-Id") if self.headers else None


def decode_json(response: RawResponse) -> Any:
    try:
        return json.loads(response.body)
    except ValueError as exc:
        raise PagerDutyDecodeError(f"Could not decode JSON response: {exc}") from exc


def _root_node(payload: Any, root_key: str) -> Any:
    if not isinstance(payload, dict) or root_key not in payload:
        raise PagerDutyMissingFieldError(root_key)
    return payload[root_key]


def unwrap(response: RawResponse, root_key: str, model: Type[M]) -> M:
    node = _root_node(decode_json(response), root_key)
    try:
        return model.model_validate(node)
    except ValidationError as exc:
        raise PagerDutyDecodeError(f"Could not decode {root_key}: {exc}") from exc


def unwrap_list(response: RawResponse, plural_key: str, model: Type[M]) -> ListPage[M]:
    payload = decode_json(response)
    items = _root_node(payload, plural_key)
    try:
        return ListPage[model].model_validate(  # type: ignore[valid-type]
            {
                "limit": payload.get("limit") or 0,
                "offset": payload.get("offset") or 0,
                "more": bool(payload.get("more")),
                "total": payload.get("total"),
                "items": items or [],
            }
        )
    except ValidationError as exc:
        raise PagerDutyDecodeError(f"Could not decode {plural_key}: {exc}") from exc
