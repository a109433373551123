from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from pdclient.errors import PagerDutyValidationError


def _param(name: str, *, default: Any = None, brackets: bool = False) -> Any:
    return field(default=default, metadata={"param": name, "brackets": brackets})


def _is_omitted(value: Any) -> bool:
    if value is None or value is False or value == "":
        return True
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 0
    return False


@dataclass(frozen=True)
class QueryOptions:
    def validate(self) -> None:
        return None


@dataclass(frozen=True)
class PageOptions(QueryOptions):
    limit: Optional[int] = _param("limit")
    offset: Optional[int] = _param("offset")
    total: bool = _param("total", default=False)

    def validate(self) -> None:
        for name in ("limit", "offset"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise PagerDutyValidationError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class ListEscalationPoliciesOptions(PageOptions):
    query: Optional[str] = _param("query")
    user_ids: Sequence[str] = _param("user_ids", default=(), brackets=True)
    team_ids: Sequence[str] = _param("team_ids", default=(), brackets=True)
    includes: Sequence[str] = _param("include", default=(), brackets=True)
    sort_by: Optional[str] = _param("sort_by")


@dataclass(frozen=True)
class GetEscalationPolicyOptions(QueryOptions):
    includes: Sequence[str] = _param("include", default=(), brackets=True)


@dataclass(frozen=True)
class GetEscalationRuleOptions(QueryOptions):
    includes: Sequence[str] = _param("include", default=(), brackets=True)


@dataclass(frozen=True)
class ListExtensionsOptions(PageOptions):
    query: Optional[str] = _param("query")
    extension_object_id: Optional[str] = _param("extension_object_id")
    extension_schema_id: Optional[str] = _param("extension_schema_id")
    includes: Sequence[str] = _param("include", default=(), brackets=True)


@dataclass(frozen=True)
class GetExtensionOptions(QueryOptions):
    includes: Sequence[str] = _param("include", default=(), brackets=True)


def query_pairs(options: Optional[QueryOptions]) -> List[Tuple[str, str]]:
    if options is None:
        return []
    pairs: List[Tuple[str, str]] = []
    for f in fields(options):
        key = f.metadata.get("param")
        if not key:
            continue
        value = getattr(options, f.name)
        if f.metadata.get("brackets"):
            pairs.extend((f"{key}[]", str(item)) for item in value or ())
        elif _is_omitted(value):
            continue
        elif value is True:
            pairs.append((key, "true"))
        else:
            pairs.append((key, str(value)))
    return pairs


def encode_query(options: Optional[QueryOptions]) -> str:
    """Encode options as a query string, using ``key[]=v`` for multi-valued fields."""
    return urlencode(query_pairs(options))
