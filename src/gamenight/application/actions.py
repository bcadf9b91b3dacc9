"""Write actions: vote, RSVP, favorite, setup, profile and sign-in.

Every action is a direct write to the remote client. Nothing is applied
locally; the view state changes when the resulting change event comes back
through the live watchers. Failures are logged and reported through the
notifier and are never retried.
"""

from pydantic import BaseModel, Field, ValidationError, field_validator

from gamenight.application.notifications import (
    Confirmer,
    Notification,
    NotificationStatus,
    Notifier,
)
from gamenight.application.view_state import ViewState
from gamenight.core.filters import Filter
from gamenight.core.logging import get_logger
from gamenight.domain.entities import PLATFORMS, Session
from gamenight.domain.tables import PLAYER_ACTIVITY_METADATA, PLAYERS, RSVPS, VOTES
from gamenight.infrastructure.remote import AuthError, RemoteDataClient, RemoteDataError

logger = get_logger(__name__)

METADATA_CONFLICT_KEY = "player_id,activity_id"

RSVP_PROMPT_TITLE = "RSVP?"
RSVP_PROMPT = "By casting a vote, you are RSVPing to game night tonight."


class ProfileUpdate(BaseModel):
    """Validated player-profile edit."""

    name: str = Field(min_length=2, max_length=30)
    platforms: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        # Length limits apply to the trimmed name
        return v.strip() if isinstance(v, str) else v

    @field_validator("platforms")
    @classmethod
    def validate_platforms(cls, v: list[str]) -> list[str]:
        unknown = [p for p in v if p not in PLATFORMS]
        if unknown:
            raise ValueError(f"Unknown platforms: {', '.join(unknown)}")
        # Keep the canonical order and drop duplicates
        return [p for p in PLATFORMS if p in v]


class GameNightActions:
    """User actions against the remote client.

    Each method returns True when its write(s) succeeded and False when the
    action was refused, cancelled or failed.
    """

    def __init__(
        self,
        remote: RemoteDataClient,
        notifier: Notifier,
        confirm: Confirmer,
        oauth_provider: str = "discord",
        oauth_redirect_url: str = "http://localhost:5173/",
    ) -> None:
        self.remote = remote
        self.notifier = notifier
        self.confirm = confirm
        self.oauth_provider = oauth_provider
        self.oauth_redirect_url = oauth_redirect_url

    def _notify(self, status: NotificationStatus, description: str) -> None:
        self.notifier.notify(Notification(status=status, description=description))

    async def toggle_vote(self, state: ViewState, activity_id: int) -> bool:
        """Vote for an activity, or take back an existing vote.

        Voting without an RSVP asks for confirmation first, then RSVPs, then
        votes; the vote is only attempted once the RSVP succeeded.
        """
        if state.player is None or state.active_event is None:
            return False
        player_id = state.player.id
        event_id = state.active_event.id

        if state.player_vote_for(activity_id) is not None:
            return await self._remove_vote(event_id, activity_id, player_id)

        if not state.is_rsvped:
            if not await self.confirm(RSVP_PROMPT_TITLE, RSVP_PROMPT):
                logger.info("Vote cancelled at RSVP prompt", activity_id=activity_id)
                return False
            if not await self._insert_rsvp(event_id, player_id, voting=True):
                return False

        return await self._insert_vote(event_id, activity_id, player_id)

    async def _remove_vote(self, event_id: int, activity_id: int, player_id: str) -> bool:
        try:
            await self.remote.delete(
                VOTES.name,
                filters=(
                    Filter.eq("event_id", event_id),
                    Filter.eq("activity_id", activity_id),
                    Filter.eq("player_id", player_id),
                ),
            )
        except RemoteDataError as e:
            logger.error("Removing vote failed", activity_id=activity_id, error=str(e))
            self._notify(NotificationStatus.ERROR, "There was an error removing your vote.")
            return False
        self._notify(NotificationStatus.INFO, "Removed your vote!")
        return True

    async def _insert_vote(self, event_id: int, activity_id: int, player_id: str) -> bool:
        try:
            await self.remote.insert(
                VOTES.name,
                {"event_id": event_id, "activity_id": activity_id, "player_id": player_id},
            )
        except RemoteDataError as e:
            logger.error("Submitting vote failed", activity_id=activity_id, error=str(e))
            self._notify(NotificationStatus.ERROR, "There was an error submitting your vote.")
            return False
        self._notify(NotificationStatus.SUCCESS, "Submitted your vote!")
        return True

    async def _insert_rsvp(self, event_id: int, player_id: str, voting: bool = False) -> bool:
        try:
            await self.remote.insert(RSVPS.name, {"event_id": event_id, "player_id": player_id})
        except RemoteDataError as e:
            logger.warning("RSVP failed", event_id=event_id, error=str(e))
            self._notify(NotificationStatus.ERROR, "There was an error RSVPing you for tonight.")
            return False
        if voting:
            self._notify(
                NotificationStatus.SUCCESS,
                "You RSVPed for this game night. You better show up on time.",
            )
        else:
            self._notify(
                NotificationStatus.SUCCESS,
                "You've RSVPed for game night tonight! You better show up.",
            )
        return True

    async def toggle_rsvp(self, state: ViewState) -> bool:
        """RSVP for the active event, or take the RSVP back.

        An RSVP cannot be taken back while the player still has votes.
        """
        if state.player is None or state.active_event is None:
            return False
        player_id = state.player.id
        event_id = state.active_event.id

        if not state.is_rsvped:
            return await self._insert_rsvp(event_id, player_id)

        if state.player_votes():
            self.notifier.alert(
                "Getting Cold Feet?",
                "You've already voted on activities for tonight. Remove those votes "
                "first if you want to take back your RSVP.",
            )
            return False

        try:
            await self.remote.delete(
                RSVPS.name,
                filters=(Filter.eq("player_id", player_id), Filter.eq("event_id", event_id)),
            )
        except RemoteDataError as e:
            logger.warning("Removing RSVP failed", event_id=event_id, error=str(e))
            self._notify(
                NotificationStatus.ERROR,
                "There was an error removing your RSVP for tonight.",
            )
            return False
        self._notify(
            NotificationStatus.INFO,
            "You've removed your RSVP for game night tonight. This is so sad.",
        )
        return True

    async def toggle_favorite(self, state: ViewState, activity_id: int) -> bool:
        if state.player is None:
            return False
        is_favorite = not state.is_favorite(activity_id)
        ok = await self._upsert_metadata(state, activity_id, {"is_favorite": is_favorite})
        if ok:
            self._notify(
                NotificationStatus.SUCCESS,
                "Added to your favorites." if is_favorite else "Removed from your favorites.",
            )
        return ok

    async def set_setup(self, state: ViewState, activity_id: int, is_setup: bool = True) -> bool:
        """Record whether the player has the activity installed and ready."""
        if state.player is None:
            return False
        ok = await self._upsert_metadata(state, activity_id, {"is_setup": is_setup})
        if ok:
            self._notify(
                NotificationStatus.SUCCESS,
                "Marked as set up." if is_setup else "Marked as not set up.",
            )
        return ok

    async def _upsert_metadata(self, state: ViewState, activity_id: int, values: dict) -> bool:
        row = {"player_id": state.player.id, "activity_id": activity_id, **values}
        try:
            await self.remote.upsert(
                PLAYER_ACTIVITY_METADATA.name, row, on_conflict=METADATA_CONFLICT_KEY
            )
        except RemoteDataError as e:
            logger.error("Updating activity metadata failed", activity_id=activity_id, error=str(e))
            self._notify(NotificationStatus.ERROR, "There was an error saving that change.")
            return False
        return True

    async def update_profile(self, state: ViewState, name: str, platforms: list[str]) -> bool:
        if state.player is None:
            return False
        try:
            update = ProfileUpdate(name=name, platforms=platforms)
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            self._notify(NotificationStatus.ERROR, f"Invalid profile: {messages}")
            return False

        try:
            await self.remote.update(
                PLAYERS.name,
                update.model_dump(),
                filters=(Filter.eq("id", state.player.id),),
            )
        except RemoteDataError as e:
            logger.error("Updating profile failed", error=str(e))
            self._notify(NotificationStatus.ERROR, "There was an error updating your profile.")
            return False
        self._notify(NotificationStatus.SUCCESS, "Your player profile has been updated.")
        return True

    def sign_in(self) -> str | None:
        """Return the URL that starts the OAuth sign-in, or None on failure."""
        try:
            return self.remote.auth.sign_in_with_oauth(
                self.oauth_provider, redirect_to=self.oauth_redirect_url
            )
        except AuthError as e:
            logger.error("Starting sign-in failed", provider=self.oauth_provider, error=str(e))
            self.notifier.alert(
                "Sign-in failed",
                f"There was an error signing in with {self.oauth_provider.title()}... "
                "Please try again later.",
            )
            return None

    async def complete_sign_in(self, callback_url: str) -> Session | None:
        try:
            session = await self.remote.auth.complete_oauth(callback_url)
        except AuthError as e:
            logger.error("Completing sign-in failed", error=str(e))
            self.notifier.alert(
                "Sign-in failed",
                f"There was an error signing in with {self.oauth_provider.title()}... "
                "Please try again later.",
            )
            return None
        self._notify(NotificationStatus.SUCCESS, f"Signed in as {session.user.full_name or session.user.id}.")
        return session

    async def sign_out(self) -> bool:
        try:
            await self.remote.auth.sign_out()
        except AuthError as e:
            logger.warning("Sign-out request failed", error=str(e))
            self._notify(NotificationStatus.WARNING, "Signed out locally, but the server did not confirm.")
            return False
        self._notify(NotificationStatus.INFO, "Signed out.")
        return True
