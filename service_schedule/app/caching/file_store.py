"""
Durable key -> envelope storage on the local filesystem.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from shared.errors import CorruptEntryError, InvalidCacheKeyError, StoreUnavailableError
from shared.logging import get_logger


_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with microsecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 strings with Z or offset suffixes into aware UTC datetimes."""
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    parsed = datetime.fromisoformat(candidate)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class CacheEnvelope:
    """The unit persisted per cache key."""

    value: Any
    fetched_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the envelope to its on-disk JSON shape."""
        return {
            "fetchedAt": format_timestamp(self.fetched_at),
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "CacheEnvelope":
        """Rehydrate an envelope, raising ValueError on any shape mismatch."""
        if not isinstance(payload, dict):
            raise ValueError("envelope is not an object")
        if "value" not in payload:
            raise ValueError("envelope has no value")
        fetched_at = payload.get("fetchedAt")
        if not isinstance(fetched_at, str):
            raise ValueError("envelope has no fetchedAt timestamp")
        return cls(value=payload["value"], fetched_at=parse_timestamp(fetched_at))


class FileEntryStore:
    """JSON envelope store rooted at a cache directory.

    Writes go to a unique temporary file next to the target and are moved
    into place with ``os.replace``, so a reader sees either the previous
    envelope or the new one, never a partial file.
    """

    def __init__(self, root_dir: Union[str, Path]):
        self.root_dir = Path(root_dir)
        self.logger = get_logger("schedule.file_store")

    def path_for(self, key: str) -> Path:
        """Map a cache key onto a path below the root directory."""
        if not key or key.startswith("/") or "\\" in key:
            raise InvalidCacheKeyError(key, "keys must be relative '/'-separated paths")

        segments = key.split("/")
        for segment in segments:
            if segment in ("", ".", "..") or not _SEGMENT_PATTERN.match(segment):
                raise InvalidCacheKeyError(key, f"segment '{segment}' is not path-safe")

        if not segments[-1].endswith(".json"):
            segments[-1] = f"{segments[-1]}.json"
        return self.root_dir.joinpath(*segments)

    def read(self, key: str) -> Optional[CacheEnvelope]:
        """Return the envelope stored at ``key`` or None when nothing is stored."""
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailableError(key, "read", exc) from exc

        try:
            return CacheEnvelope.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, RecursionError) as exc:
            # UnicodeDecodeError and json.JSONDecodeError are ValueErrors too
            raise CorruptEntryError(key, str(exc)) from exc

    def write(self, key: str, envelope: CacheEnvelope) -> None:
        """Atomically persist ``envelope`` at ``key``."""
        path = self.path_for(key)
        payload = json.dumps(envelope.to_dict(), separators=(",", ":"))

        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise StoreUnavailableError(key, "write", exc) from exc
        finally:
            if tmp_name is not None:
                self._discard(tmp_name)

        self.logger.debug("Cache entry written", key=key, path=str(path))

    def _discard(self, tmp_name: str) -> None:
        try:
            os.unlink(tmp_name)
        except OSError as exc:
            self.logger.warning("Failed to remove temporary cache file", path=tmp_name, error=str(exc))

    def check_writable(self) -> bool:
        """Return True when the root directory exists (or can be created) and is writable."""
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.logger.error("Cache directory unavailable", path=str(self.root_dir), error=str(exc))
            return False
        return os.access(self.root_dir, os.W_OK)
