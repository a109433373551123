from __future__ import annotations

import http.client
import io
import json
import urllib.error
from typing import Any, Dict, List
from urllib.parse import parse_qs, urlsplit

import pytest

from pdclient.client import ESCALATION_POLICIES, PagerDutyClient
from pdclient.errors import PagerDutyApiError, PagerDutyDecodeError
from pdclient.options import ListEscalationPoliciesOptions
from pdclient.resources import DEFAULT_MAX_PAGES


class _DummyResponse:
    def __init__(self, body: bytes, status: int = 200, request_id: str | None = None):
        self._body = body
        self.status = status
        self.headers = {"X-Request-Id": request_id} if request_id else {}
        self.exits = 0

    def __enter__(self) -> "_DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.exits += 1
        return False

    def read(self) -> bytes:
        return self._body


def _client(**kwargs: Any) -> PagerDutyClient:
    return PagerDutyClient("test-token", base_url="https://pd.example.com/", **kwargs)


def _paged_server(total_items: int, calls: List[str]):
    def _fake_urlopen(req, timeout=30, context=None):
        calls.append(req.full_url)
        query = parse_qs(urlsplit(req.full_url).query)
        limit = int(query["limit"][0])
        offset = int(query.get("offset", ["0"])[0])
        items = [{"id": f"P{i}", "name": f"policy-{i}"} for i in range(offset, min(offset + limit, total_items))]
        body = {
            "escalation_policies": items,
            "limit": limit,
            "offset": offset,
            "more": offset + limit < total_items,
            "total": None,
        }
        return _DummyResponse(json.dumps(body).encode("utf-8"))

    return _fake_urlopen


def test_list_all_follows_pages_in_server_order(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr("pdclient.resources.request.urlopen", _paged_server(6, calls))

    policies = _client().list_escalation_policies_all(page_size=2)

    assert [p.id for p in policies] == ["P0", "P1", "P2", "P3", "P4", "P5"]
    assert len(calls) == 3
    assert calls[0] == "https://pd.example.com/escalation_policies?limit=2"
    assert "offset=2" in calls[1]
    assert "offset=4" in calls[2]


def test_list_all_respects_max_pages_and_max_items(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr("pdclient.resources.request.urlopen", _paged_server(10, calls))
    client = _client()

    assert len(client.list_escalation_policies_all(page_size=2, max_pages=2)) == 4
    assert len(calls) == 2

    calls.clear()
    assert [p.id for p in client.list_escalation_policies_all(page_size=2, max_items=3)] == ["P0", "P1", "P2"]
    assert len(calls) == 2


def test_list_all_keeps_caller_filters_on_every_page(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr("pdclient.resources.request.urlopen", _paged_server(4, calls))
    options = ListEscalationPoliciesOptions(team_ids=("T1",))

    _client().list_escalation_policies_all(options, page_size=2)

    assert len(calls) == 2
    assert all("team_ids%5B%5D=T1" in url for url in calls)
    assert options.limit is None and options.offset is None


def test_list_page_issues_a_single_request(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr("pdclient.resources.request.urlopen", _paged_server(6, calls))

    page = _client().list_escalation_policies(ListEscalationPoliciesOptions(limit=2))

    assert len(calls) == 1
    assert len(page.items) == 2
    assert page.more is True


def test_requests_carry_auth_and_content_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: Dict[str, Any] = {}

    def _fake_urlopen(req, timeout=30, context=None):
        captured["headers"] = {k.lower(): v for k, v in req.header_items()}
        captured["method"] = req.get_method()
        captured["timeout"] = timeout
        captured["context"] = context
        return _DummyResponse(b'{"escalation_policy": {"id": "P1"}}')

    monkeypatch.setattr("pdclient.resources.request.urlopen", _fake_urlopen)
    _client(from_email="ops@example.com", timeout=5).get_escalation_policy("P1")

    assert captured["method"] == "GET"
    assert captured["timeout"] == 5
    assert captured["context"] is not None
    assert captured["headers"]["authorization"] == "Token token=test-token"
    assert captured["headers"]["accept"] == "application/vnd.pagerduty+json;version=2"
    assert captured["headers"]["from"] == "ops@example.com"


def test_response_is_closed_once_even_when_decoding_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    responses: List[_DummyResponse] = []

    def _fake_urlopen(req, timeout=30, context=None):
        resp = _DummyResponse(b"<html>oops</html>")
        responses.append(resp)
        return resp

    monkeypatch.setattr("pdclient.resources.request.urlopen", _fake_urlopen)
    with pytest.raises(PagerDutyDecodeError):
        _client().get(ESCALATION_POLICIES, "P1")
    assert responses[0].exits == 1


def test_http_error_carries_status_and_error_body(monkeypatch: pytest.MonkeyPatch) -> None:
    events: List[Dict[str, Any]] = []

    def _raise_http_error(req, timeout=30, context=None):
        body = b'{"error":{"code":2001,"message":"Invalid Input Provided","errors":["Name cannot be empty."]}}'
        raise urllib.error.HTTPError(
            url=req.full_url,
            code=400,
            msg="Bad Request",
            hdrs={"X-Request-Id": "req-err-001"},  # type: ignore[arg-type]
            fp=io.BytesIO(body),
        )

    monkeypatch.setattr("pdclient.resources.request.urlopen", _raise_http_error)
    with pytest.raises(PagerDutyApiError) as exc_info:
        _client(logger=events.append).get_escalation_policy("P1")

    exc = exc_info.value
    assert exc.status_code == 400
    assert exc.code == 2001
    assert exc.message == "Invalid Input Provided"
    assert exc.errors == ["Name cannot be empty."]
    assert exc.request_id == "req-err-001"
    assert events[-1]["event"] == "http_error"
    assert events[-1]["error_code"] == 2001


def test_http_error_with_plain_text_body(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise_http_error(req, timeout=30, context=None):
        raise urllib.error.HTTPError(
            url=req.full_url, code=502, msg="Bad Gateway", hdrs=None, fp=io.BytesIO(b"upstream unavailable")  # type: ignore[arg-type]
        )

    monkeypatch.setattr("pdclient.resources.request.urlopen", _raise_http_error)
    with pytest.raises(PagerDutyApiError) as exc_info:
        _client().list_escalation_policies()
    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "upstream unavailable"
    assert exc_info.value.code is None


def test_transport_failure_propagates_unchanged(monkeypatch: pytest.MonkeyPatch) -> None:
    events: List[Dict[str, Any]] = []
    dropped = urllib.error.URLError("connection dropped")

    def _fail(req, timeout=30, context=None):
        raise dropped

    monkeypatch.setattr("pdclient.resources.request.urlopen", _fail)
    with pytest.raises(urllib.error.URLError) as exc_info:
        _client(logger=events.append).get_escalation_policy("P1")
    assert exc_info.value is dropped
    assert [e["event"] for e in events] == ["network_error"]


def test_logger_receives_request_events_and_cannot_break_calls(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_urlopen(req, timeout=30, context=None):
        return _DummyResponse(b'{"escalation_policy": {"id": "P1"}}', request_id="req-123")

    def _broken_logger(event: Dict[str, Any]) -> None:
        raise RuntimeError("log sink down")

    monkeypatch.setattr("pdclient.resources.request.urlopen", _fake_urlopen)
    client = _client(logger=_broken_logger)
    assert client.get_escalation_policy("P1").id == "P1"

    events: List[Dict[str, Any]] = []
    client.get_escalation_policy("P1", logger=events.append)
    assert events[0]["event"] == "http_request"
    assert events[0]["method"] == "GET"
    assert events[0]["path"] == "/escalation_policies/P1"
    assert events[0]["status_code"] == 200
    assert events[0]["request_id"] == "req-123"


def test_ids_are_percent_encoded_in_paths(monkeypatch: pytest.MonkeyPatch) -> None:
    urls: List[str] = []

    def _fake_urlopen(req, timeout=30, context=None):
        urls.append(req.full_url)
        return _DummyResponse(b"", status=204)

    monkeypatch.setattr("pdclient.resources.request.urlopen", _fake_urlopen)
    _client().delete_escalation_policy("P/1")
    assert urls == ["https://pd.example.com/escalation_policies/P%2F1"]


def test_list_all_is_capped_when_server_never_stops(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []

    def _endless(req, timeout=30, context=None):
        calls.append(req.full_url)
        body = {"escalation_policies": [{"id": f"P{len(calls)}"}], "limit": 1, "more": True}
        return _DummyResponse(json.dumps(body).encode("utf-8"))

    monkeypatch.setattr("pdclient.resources.request.urlopen", _endless)
    policies = _client().list_escalation_policies_all(page_size=1)

    assert len(calls) == DEFAULT_MAX_PAGES
    assert len(policies) == DEFAULT_MAX_PAGES


def test_list_all_uses_options_limit_as_page_size(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr("pdclient.resources.request.urlopen", _paged_server(6, calls))

    policies = _client().list_escalation_policies_all(ListEscalationPoliciesOptions(limit=3))

    assert len(policies) == 6
    assert calls[0] == "https://pd.example.com/escalation_policies?limit=3"
    assert "limit=3&offset=3" in calls[1]
    assert len(calls) == 2


def test_http_error_keeps_status_when_body_read_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    events: List[Dict[str, Any]] = []

    class _TruncatedBody(io.BytesIO):
        def read(self, *args: Any) -> bytes:
            raise http.client.IncompleteRead(b"partial")

    def _raise_http_error(req, timeout=30, context=None):
        raise urllib.error.HTTPError(
            url=req.full_url, code=503, msg="Service Unavailable", hdrs=None, fp=_TruncatedBody()  # type: ignore[arg-type]
        )

    monkeypatch.setattr("pdclient.resources.request.urlopen", _raise_http_error)
    with pytest.raises(PagerDutyApiError) as exc_info:
        _client(logger=events.append).get_escalation_policy("P1")

    assert exc_info.value.status_code == 503
    assert exc_info.value.message == "HTTP 503"
    assert [e["event"] for e in events] == ["http_error"]
