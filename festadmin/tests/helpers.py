from __future__ import annotations

import copy
import json

BACKEND_URL = "http://backend.test/api"


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, *, content: bytes | None = None, headers=None):
        self._payload = payload
        self.status_code = status_code
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode()
        self.content = content
        self.headers = headers or {"Content-Type": "application/json"}

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeBackend:
    """
    In-memory stand-in for the REST backend, used as the side effect of the
    patched ``SESSION.request``. Collections answer GET/POST on ``/<name>``
    and GET/PATCH/PUT/DELETE on ``/<name>/<id>``; anything else must be
    registered in ``routes``.
    """

    def __init__(self, **collections):
        self.collections = {name: copy.deepcopy(records) for name, records in collections.items()}
        self.routes: dict[tuple[str, str], object] = {}
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.calls: list[dict] = []
        self._counter = 0

    def fail(self, method: str, path: str, status: int = 400, message: str = "") -> None:
        self.failures[(method, path)] = (status, message)

    def writes(self) -> list[tuple[str, str, object]]:
        return [(call["method"], call["path"], call["json"]) for call in self.calls if call["method"] != "GET"]

    def __call__(self, method, url, headers=None, timeout=None, params=None, json=None, data=None, files=None):
        path = url[len(BACKEND_URL):]
        self.calls.append(
            {"method": method, "path": path, "headers": headers or {}, "json": json, "data": data, "files": files}
        )

        if (method, path) in self.failures:
            status, message = self.failures[(method, path)]
            return FakeResponse({"message": message} if message else {}, status)
        if (method, path) in self.routes:
            route = self.routes[(method, path)]
            return route if isinstance(route, FakeResponse) else FakeResponse(route)

        parts = path.strip("/").split("/")
        if parts[0] not in self.collections or len(parts) > 2:
            return FakeResponse({"message": "Not found"}, 404)
        records = self.collections[parts[0]]

        if len(parts) == 1:
            if method == "GET":
                return FakeResponse({"data": records})
            if method == "POST":
                self._counter += 1
                record = {"_id": f"new{self._counter}"}
                record.update(json if json is not None else dict(data or {}))
                records.append(record)
                return FakeResponse({"data": record}, 201)
            return FakeResponse({"message": "Method not allowed"}, 405)

        record = next((item for item in records if item.get("_id") == parts[1]), None)
        if record is None:
            return FakeResponse({"message": "Not found"}, 404)
        if method == "GET":
            return FakeResponse({"data": record})
        if method in ("PATCH", "PUT"):
            record.update(json if json is not None else dict(data or {}))
            return FakeResponse({"data": record})
        if method == "DELETE":
            records.remove(record)
            return FakeResponse({"message": "Deleted"})
        return FakeResponse({"message": "Method not allowed"}, 405)
