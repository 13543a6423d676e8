"""Where a client keeps its access token (and the signed-in user) between runs."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    token: Optional[str] = None
    user: Optional[dict] = None


class TokenStore(Protocol):
    def load(self) -> SessionState: ...

    def save(self, state: SessionState) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    def __init__(self, state: Optional[SessionState] = None):
        self._state = state or SessionState()

    def load(self) -> SessionState:
        return SessionState(self._state.token, self._state.user)

    def save(self, state: SessionState) -> None:
        self._state = SessionState(state.token, state.user)

    def clear(self) -> None:
        self._state = SessionState()


class FileTokenStore:
    """JSON file store; survives process restarts the way browser storage survives a reload."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> SessionState:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return SessionState()
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable session file %s: %s", self.path, exc)
            return SessionState()
        if not isinstance(raw, dict):
            return SessionState()
        token = raw.get("token")
        user = raw.get("user")
        return SessionState(
            token if isinstance(token, str) and token else None,
            user if isinstance(user, dict) else None,
        )

    def save(self, state: SessionState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(state)), encoding="utf-8")
        os.replace(tmp, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
