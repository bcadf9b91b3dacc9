"""Session watcher: the signed-in identity."""

from gamenight.application.watcher import Watcher
from gamenight.core.logging import bind_user_id, get_logger
from gamenight.domain.entities import Identity, Session
from gamenight.infrastructure.remote import AuthClient, AuthEvent, AuthSubscription

logger = get_logger(__name__)


class SessionWatcher(Watcher):
    """Tracks auth-state notifications.

    ``is_loading`` stays True until the first notification. A dropped
    notification stream is not recovered.
    """

    def __init__(self, auth: AuthClient) -> None:
        super().__init__("session")
        self.auth = auth
        self.user: Identity | None = None
        self._subscription: AuthSubscription | None = None

    def start(self) -> None:
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_change)

    def _on_change(self, event: AuthEvent, session: Session | None) -> None:
        user = session.user if session is not None else None
        changed = user != self.user or self.is_loading
        self.user = user
        self.is_loading = False
        bind_user_id(user.id if user else None)
        logger.debug("Session updated", auth_event=event.value, signed_in=user is not None)
        self._mark_settled()
        if changed:
            self._notify()

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        await super().close()
