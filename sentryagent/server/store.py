"""Run storage for the HTTP layer. In-memory only; nothing is persisted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

T = TypeVar("T")


class RunStore(Protocol[T]):
    """Key-value storage of runs, keyed by run or scan id."""

    def get(self, key: str) -> Optional[T]:
        ...

    def set(self, key: str, value: T) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryRunStore(Generic[T]):
    """Dict-backed RunStore. Unbounded, lost on restart."""

    def __init__(self) -> None:
        self._items: Dict[str, T] = {}

    def get(self, key: str) -> Optional[T]:
        return self._items.get(key)

    def set(self, key: str, value: T) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


@dataclass
class ScanRecord:
    """Status of a scan started through the thin scan API."""

    status: str
    progress: int = 0
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def status_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "progress": self.progress}
        if self.error:
            data["error"] = self.error
        return data
