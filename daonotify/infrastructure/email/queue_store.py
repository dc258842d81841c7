"""JSON snapshot of pending email jobs surviving process restarts."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

import anyio

logger = logging.getLogger(__name__)


class QueueSnapshotStore:
    """Serialize every write to a single JSON file.

    Writes go through one lock so snapshots land on disk in the order they
    were requested; each write replaces the file atomically.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> list[dict[str, Any]]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        if not raw.strip():
            return []
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring malformed email queue snapshot at %s", self.path)
            return []
        if not isinstance(parsed, list):
            logger.warning("Ignoring email queue snapshot at %s: not a list", self.path)
            return []
        return [entry for entry in parsed if isinstance(entry, dict)]

    def _write(self, entries: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.path.with_name(f"{self.path.name}.tmp")
        temporary.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
        os.replace(temporary, self.path)

    async def load(self) -> list[dict[str, Any]]:
        async with self._lock:
            try:
                return await anyio.to_thread.run_sync(self._read)
            except OSError as exc:
                logger.warning("Unable to read email queue snapshot %s: %s", self.path, exc)
                return []

    async def save(self, entries: list[dict[str, Any]]) -> None:
        async with self._lock:
            try:
                await anyio.to_thread.run_sync(self._write, entries)
            except OSError as exc:
                logger.warning("Unable to persist email queue snapshot %s: %s", self.path, exc)


__all__ = ["QueueSnapshotStore"]
