from __future__ import annotations

import http.client
import io
import json
import urllib.error
import urllib.request

import pytest

from adapters.directory_client import XrpcDirectoryClient, normalize_handle
from core.errors import ResolutionError
from core.registry import build_registry


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


def _install(monkeypatch, handler) -> list[str]:
    urls: list[str] = []

    def fake_urlopen(request, timeout=None):
        urls.append(request.full_url)
        return handler(request)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return urls


def test_normalize_handle() -> None:
    assert normalize_handle(" @Alice.Example ") == "alice.example"


def test_resolve_handle_success_is_cached(monkeypatch) -> None:
    body = json.dumps({"did": "did:plc:alice"}).encode("utf-8")
    urls = _install(monkeypatch, lambda request: FakeResponse(body))
    client = XrpcDirectoryClient("https://directory.test/")

    assert client.resolve_handle("@Alice.example") == "did:plc:alice"
    assert client.resolve_handle("alice.example") == "did:plc:alice"

    assert urls == [
        "https://directory.test/xrpc/com.atproto.identity.resolveHandle?handle=alice.example"
    ]


def test_resolve_handle_http_error(monkeypatch) -> None:
    def handler(request):
        raise urllib.error.HTTPError(
            request.full_url, 400, "Bad Request", {}, io.BytesIO(b'{"error":"InvalidRequest"}')
        )

    _install(monkeypatch, handler)
    with pytest.raises(ResolutionError, match="400"):
        XrpcDirectoryClient("https://directory.test").resolve_handle("gone.example")


def test_resolve_handle_network_error(monkeypatch) -> None:
    def handler(request):
        raise urllib.error.URLError("connection refused")

    _install(monkeypatch, handler)
    with pytest.raises(ResolutionError):
        XrpcDirectoryClient("https://directory.test").resolve_handle("a.example")


@pytest.mark.parametrize("body", [b"not json", b"{}", b'{"did": ""}', b"[]"])
def test_resolve_handle_bad_payload(monkeypatch, body: bytes) -> None:
    _install(monkeypatch, lambda request: FakeResponse(body))
    with pytest.raises(ResolutionError):
        XrpcDirectoryClient("https://directory.test").resolve_handle("a.example")


def test_empty_handle_is_rejected_without_request(monkeypatch) -> None:
    urls = _install(monkeypatch, lambda request: FakeResponse(b"{}"))
    with pytest.raises(ResolutionError):
        XrpcDirectoryClient("https://directory.test").resolve_handle("@")
    assert urls == []


class TruncatedResponse(FakeResponse):
    def read(self) -> bytes:
        raise http.client.IncompleteRead(b'{"did": "did:pl', 10)


def test_resolve_handle_invalid_utf8_body(monkeypatch) -> None:
    _install(monkeypatch, lambda request: FakeResponse(b'{"did": "\xff"}'))
    with pytest.raises(ResolutionError):
        XrpcDirectoryClient("https://directory.test").resolve_handle("a.example")


def test_resolve_handle_truncated_body(monkeypatch) -> None:
    _install(monkeypatch, lambda request: TruncatedResponse(b""))
    with pytest.raises(ResolutionError):
        XrpcDirectoryClient("https://directory.test").resolve_handle("a.example")


def test_registry_init_survives_undecodable_responses(monkeypatch) -> None:
    _install(monkeypatch, lambda request: FakeResponse(b'{"did": "\xff\xfe"}'))
    registry = build_registry(
        [
            {"name": "first", "subscribes": {"handles": ["a.example"]}},
            {"name": "second", "subscribes": {"dids": ["did:plc:b"], "handles": ["b.example"]}},
        ]
    )

    failures = registry.init(XrpcDirectoryClient("https://directory.test"))

    assert {name: [f.handle for f in items] for name, items in failures.items()} == {
        "first": ["a.example"],
        "second": ["b.example"],
    }
    assert registry.get("first").subscribes.dids is None
    assert registry.get("second").subscribes.dids == ["did:plc:b"]
    assert registry.get("second").subscribes.handles is None
