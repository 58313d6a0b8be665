# festadmin/api.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

# ---------- HTTP client ----------

UA = "ArtFestConsole/1.0"

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": UA, "Accept": "application/json"})

PUBLIC_ROUTES = ("/users/login",)


class ApiError(Exception):
    """Raised for every failed backend call."""

    def __init__(self, message: str = "", *, status_code: Optional[int] = None, path: str = ""):
        super().__init__(message or f"Backend request failed ({status_code or 'no response'})")
        self.message = message
        self.status_code = status_code
        self.path = path

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    def user_message(self, fallback: str) -> str:
        """The server-provided message, or the caller's fallback."""
        return self.message or fallback


def _is_public(path: str) -> bool:
    return any(path == route or path.startswith(route + "/") for route in PUBLIC_ROUTES)


def _server_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or ""
        return str(message) if message else ""
    return ""


# ---------- envelope helpers ----------

def extract_collection(payload: Any, key: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Pull a list of records out of the backend's response envelopes:
    a bare list, ``{"data": [...]}``, ``{key: [...]}`` or ``{"data": {key: [...]}}``.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    if key and isinstance(payload.get(key), list):
        return payload[key]
    data = payload.get("data")
    if isinstance(data, list):
        return data
    if key and isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


def extract_record(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict):
            return data
        return payload
    return {}


def record_id(record: Optional[Dict[str, Any]]) -> str:
    if not isinstance(record, dict):
        return ""
    return str(record.get("_id") or record.get("id") or "")


def reference_id(value: Any) -> str:
    """Id of a reference that may arrive populated or as a bare id."""
    if isinstance(value, dict):
        return record_id(value)
    return str(value or "")


# ---------- client ----------

class ApiClient:
    """Backend client bound to one console session's token."""

    def __init__(self, token: Optional[str] = None, *, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.token = token
        self.base_url = (base_url or settings.ARTFEST_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ARTFEST_API_TIMEOUT

    def _headers(self, path: str) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.token and not _is_public(path):
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            r = SESSION.request(method, url, headers=self._headers(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(status_code=None, path=path) from e
        if r.status_code >= 400:
            message = _server_message(r)
            logger.warning("%s %s returned %s: %s", method, path, r.status_code, message or "-")
            raise ApiError(message, status_code=r.status_code, path=path)
        return r

    def request(self, method: str, path: str, **kwargs) -> Any:
        r = self._send(method, path, **kwargs)
        if r.status_code == 204 or not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise ApiError("Unexpected response from server", status_code=r.status_code, path=path) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: Optional[Dict[str, Any]] = None, *, files: Optional[Dict[str, Any]] = None) -> Any:
        if files:
            return self.request("POST", path, data=payload or {}, files=files)
        return self.request("POST", path, json=payload or {})

    def put(self, path: str, payload: Optional[Dict[str, Any]] = None, *, files: Optional[Dict[str, Any]] = None) -> Any:
        if files:
            return self.request("PUT", path, data=payload or {}, files=files)
        return self.request("PUT", path, json=payload or {})

    def patch(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PATCH", path, json=payload or {})

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def download(self, path: str) -> Tuple[bytes, str]:
        """Fetch a binary body (CSV export) and its content type."""
        r = self._send("GET", path)
        return r.content, r.headers.get("Content-Type", "application/octet-stream")

    # convenience

    def collection(self, path: str, key: Optional[str] = None) -> List[Dict[str, Any]]:
        return extract_collection(self.get(path), key)


def client_for(request) -> ApiClient:
    """Client carrying the token of the signed-in console user."""
    return ApiClient(getattr(request, "api_token", None))
