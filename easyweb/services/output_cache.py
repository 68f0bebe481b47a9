import time
from dataclasses import dataclass


@dataclass
class CachedResponse:
    status_code: int
    headers: list[tuple[str, str]]
    body: bytes
    media_type: str | None
    expires_at: float


class OutputCache:
    """In-memory cache of rendered HTML responses for anonymous visitors."""

    def __init__(self, duration_seconds: int):
        self.duration_seconds = duration_seconds
        self._entries: dict[str, CachedResponse] = {}

    def get(self, key: str) -> CachedResponse | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.monotonic() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def set(
        self,
        key: str,
        status_code: int,
        headers: list[tuple[str, str]],
        body: bytes,
        media_type: str | None,
    ) -> None:
        self._entries[key] = CachedResponse(
            status_code=status_code,
            headers=headers,
            body=body,
            media_type=media_type,
            expires_at=time.monotonic() + self.duration_seconds,
        )

    def __len__(self) -> int:
        return len(self._entries)
