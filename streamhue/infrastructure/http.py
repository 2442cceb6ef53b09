"""
STREAMHUE - HTTP Client Abstraction

Provides abstraction layer for HTTP operations against the Hue bridge.
This allows mocking in tests and centralizes HTTP logic.
"""

import json
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests
from requests import Response


class HttpClient(Protocol):
    """Protocol for HTTP operations."""

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        """Perform HTTP GET request."""
        ...

    def put(
        self,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        """Perform HTTP PUT request with a JSON body."""
        ...


class RequestsHttpClient:
    """Real HTTP client using a pooled requests session."""

    def __init__(self, verify: bool = True):
        self._session = requests.Session()
        self._session.verify = verify

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        return self._session.get(url, params=params or {}, timeout=timeout)

    def put(
        self,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        return self._session.put(url, json=body or {}, timeout=timeout)

    def stop(self) -> None:
        """Close the pooled session."""
        self._session.close()


class MockHttpClient:
    """Mock HTTP client for testing."""

    def __init__(
        self,
        responses: Optional[Dict[str, Any]] = None,
        put_responses: Optional[Dict[str, Any]] = None,
    ):
        self._responses = responses or {}
        self._put_responses = put_responses or {}
        self._call_history: List[Tuple[str, str, Dict[str, Any]]] = []

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        self._call_history.append(("GET", url, params or {}))
        return self._respond(self._responses, url, default=None)

    def put(
        self,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        timeout: float = 5.0,
    ) -> Response:
        self._call_history.append(("PUT", url, body or {}))
        # Hue acknowledges each changed attribute with a success entry
        default = [{"success": {f"{url}/{key}": value}} for key, value in (body or {}).items()]
        return self._respond(self._put_responses, url, default=default)

    def _respond(self, responses: Dict[str, Any], url: str, default: Any) -> Response:
        payload = responses.get(url, default)
        response = Response()

        if isinstance(payload, Exception):
            raise payload

        if payload is None:
            response.status_code = 404
            return response

        response.status_code = 200
        response._content = json.dumps(payload).encode()
        return response

    def get_call_history(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        """Get history of HTTP calls for testing."""
        return self._call_history
