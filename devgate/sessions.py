"""File-backed store of client sessions.

The file is JSON::

    {"version": 1, "sessions": [{"token": "...", "created_at": "2026-01-01T00:00:00+00:00"}]}

Every mutation writes the complete new content to ``<file>.tmp``, fsyncs it
and atomically replaces the live file.  In-memory state is only updated once
that replace has succeeded, so memory never runs ahead of disk.

The store itself does no locking; callers hold the exclusive guard of
:class:`devgate.state.SharedState` for mutations and the shared guard for
lookups.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from devgate.errors import PersistenceFailure

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
TOKEN_BYTES = 32


@dataclass(frozen=True)
class Session:
    token: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def new(cls) -> Session:
        return cls(token=secrets.token_urlsafe(TOKEN_BYTES))

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "created_at": self.created_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            token=str(data["token"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class SessionStore:
    """Sessions held in memory and mirrored to a JSON file."""

    def __init__(self, path: str | Path, sessions: dict[str, Session] | None = None) -> None:
        self.path = Path(path)
        self._sessions: dict[str, Session] = dict(sessions or {})

    # ── Loading ────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> SessionStore:
        """Read the store from *path*; a missing file gives an empty store."""
        path = Path(path)
        if not path.exists():
            logger.info("No sessions file at %s, starting empty", path)
            return cls(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            sessions = [Session.from_dict(item) for item in data["sessions"]]
        except OSError as e:
            raise PersistenceFailure(f"Failed to read sessions file: {path}", path=str(path)) from e
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceFailure(f"Malformed sessions file: {path}", path=str(path)) from e
        logger.info("Loaded %d session(s) from %s", len(sessions), path)
        return cls(path, {s.token: s for s in sessions})

    # ── Queries ────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions

    def contains(self, token: str) -> bool:
        return self.get(token) is not None

    def get(self, token: str) -> Session | None:
        return self._sessions.get(token)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    # ── Mutations ──────────────────────────────────────────────────

    async def issue(self) -> Session:
        """Create a session, persist it, then make it visible in memory."""
        session = Session.new()
        updated = dict(self._sessions)
        updated[session.token] = session
        await self._commit(updated)
        return session

    async def revoke(self, token: str) -> bool:
        """Remove *token*; returns ``False`` if it was not present."""
        if token not in self._sessions:
            return False
        await self._commit({k: v for k, v in self._sessions.items() if k != token})
        return True

    async def _commit(self, sessions: dict[str, Session]) -> None:
        """Write *sessions* to disk, then replace the in-memory map with them.

        The write runs in a worker thread which cannot be interrupted.  If the
        calling task is cancelled, this still waits for the thread to finish
        (so the caller keeps its guard) and mirrors a completed write into
        memory before the cancellation propagates.
        """
        payload = {
            "version": SCHEMA_VERSION,
            "sessions": [s.to_dict() for s in sessions.values()],
        }
        write = asyncio.ensure_future(asyncio.to_thread(_write_json_atomic, self.path, payload))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            while not write.done():
                try:
                    await asyncio.shield(write)
                except asyncio.CancelledError:
                    continue
            error = write.exception()
            if error is None:
                self._sessions = sessions
            else:
                logger.error("Failed to persist sessions to %s: %s", self.path, error)
            raise
        except OSError as e:
            logger.error("Failed to persist sessions to %s: %s", self.path, e)
            raise PersistenceFailure("Failed to persist sessions", path=str(self.path)) from e
        self._sessions = sessions


def _write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise
