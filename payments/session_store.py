"""
Transient per-user session state used to carry the PayPal correlation id
across the approval redirect.
"""

from collections.abc import MutableMapping
from typing import Any, Protocol


class SessionStore(Protocol):
    def put(self, key: str, value: Any) -> None: ...

    def get(self, key: str) -> Any | None: ...

    def remove(self, key: str) -> None: ...


class InMemorySessionStore:
    """Dict-backed store for scripts and tests."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class RequestSessionStore:
    """Adapter over Starlette's ``request.session`` (SessionMiddleware)."""

    def __init__(self, session: MutableMapping[str, Any]):
        self._session = session

    def put(self, key: str, value: Any) -> None:
        self._session[key] = value

    def get(self, key: str) -> Any | None:
        return self._session.get(key)

    def remove(self, key: str) -> None:
        self._session.pop(key, None)
