"""XRPC handle resolution adapter.

Implements the core DirectoryPort with ``com.atproto.identity.resolveHandle``.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request

from core.errors import ResolutionError

LOGGER = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "https://public.api.bsky.app"


def normalize_handle(handle: str) -> str:
    """Strip a leading @ and lowercase; handles are case-insensitive."""

    return handle.strip().lstrip("@").lower()


class XrpcDirectoryClient:
    """Directory client that resolves handles over HTTP, with a per-handle cache."""

    def __init__(self, service_url: str = DEFAULT_SERVICE_URL, timeout: float = 10.0) -> None:
        self._service_url = service_url.rstrip("/")
        self._timeout = timeout
        self._cache: dict[str, str] = {}

    def _endpoint(self, handle: str) -> str:
        query = urllib.parse.urlencode({"handle": handle})
        return f"{self._service_url}/xrpc/com.atproto.identity.resolveHandle?{query}"

    def resolve_handle(self, handle: str) -> str:
        """Return the DID for a handle or raise ResolutionError."""

        handle = normalize_handle(handle)
        if not handle:
            raise ResolutionError("empty handle")
        if handle in self._cache:
            return self._cache[handle]

        request = urllib.request.Request(self._endpoint(handle), method="GET")
        request.add_header("Accept", "application/json")
        # A blocking call is fine here: resolution only happens once at startup.
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise ResolutionError(f"resolveHandle error {e.code} for {handle}: {detail}") from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise ResolutionError(f"resolveHandle failed for {handle}: {e}") from e

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ResolutionError(f"resolveHandle returned invalid JSON for {handle}") from e

        did = payload.get("did") if isinstance(payload, dict) else None
        if not isinstance(did, str) or not did:
            raise ResolutionError(f"resolveHandle returned no did for {handle}")

        LOGGER.debug("Resolved %s to %s", handle, did)
        self._cache[handle] = did
        return did
