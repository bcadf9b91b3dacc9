"""File-backed persistence of the auth session between CLI invocations."""

import json
import os
from datetime import datetime
from pathlib import Path

from gamenight.core.logging import get_logger
from gamenight.domain.entities import Identity, Session

logger = get_logger(__name__)


class SessionStore:
    """Stores one session as JSON at ``path``."""

    def __init__(self, path: Path | None) -> None:
        self.path = path

    def load(self) -> Session | None:
        if self.path is None or not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Session(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token"),
                expires_at=datetime.fromisoformat(data["expires_at"]),
                user=Identity.from_user(data["user"]),
                token_type=data.get("token_type", "bearer"),
            )
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Ignoring unreadable session file", path=str(self.path), error=str(e))
            return None

    def save(self, session: Session) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_at": session.expires_at.isoformat(),
            "token_type": session.token_type,
            "user": session.user.to_user(),
        }
        # Owner-only from creation; an existing file is narrowed before writing
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(payload, indent=2))

    def clear(self) -> None:
        if self.path is not None and self.path.exists():
            self.path.unlink()
