"""Command-line interface for gamenight.

Each command builds a remote client from settings, waits for the live view
state to settle, then reads it or runs one action.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, NoReturn

import click

from gamenight.application import (
    GameNightActions,
    GameNightStore,
    Notification,
    NotificationStatus,
    Notifier,
    ViewState,
)
from gamenight.core.config import Settings, get_settings
from gamenight.core.logging import configure_logging, get_logger
from gamenight.domain.entities import PLATFORMS
from gamenight.infrastructure.remote import AuthError, RemoteDataClient
from gamenight.infrastructure.remote.supabase import SupabaseClient

logger = get_logger(__name__)

STATUS_COLORS = {
    NotificationStatus.SUCCESS: "green",
    NotificationStatus.INFO: "blue",
    NotificationStatus.WARNING: "yellow",
    NotificationStatus.ERROR: "red",
}


class ClickNotifier(Notifier):
    """Prints notifications to the terminal."""

    def notify(self, notification: Notification) -> None:
        click.secho(notification.description, fg=STATUS_COLORS[notification.status])

    def alert(self, title: str, message: str) -> None:
        click.secho(title, fg="red", bold=True, err=True)
        click.echo(message, err=True)


def make_confirmer(assume_yes: bool):
    async def confirm(title: str, message: str) -> bool:
        if assume_yes:
            return True
        click.secho(title, bold=True)
        return click.confirm(message, default=False)

    return confirm


def render_state(state: ViewState) -> str:
    """Plain-text summary of the view state."""
    lines: list[str] = []
    if state.user is None:
        return "Login with Discord to get started."

    name = (state.player.name if state.player else None) or state.user.full_name or "User"
    lines.append(f"Hi, {name}")

    if state.player is None:
        lines.append("Pending verification: you can vote and RSVP once your account is verified.")
    elif state.active_event is None:
        if state.next_event is not None:
            lines.append(f"No game night tonight! The next one starts {state.next_event.start_at.astimezone():%a %b %d %H:%M}.")
        else:
            lines.append("No game night tonight! The next one is not yet scheduled.")
    else:
        lines.append(f"Game night tonight at {state.active_event.start_at.astimezone():%H:%M}")
        coming = ", ".join(rsvp.player_name or "Unnamed Player" for rsvp in state.rsvps) or "nobody yet"
        lines.append(f"Who's coming: {coming}")
        lines.append("You're coming." if state.is_rsvped else "You haven't RSVPed.")

    if state.activities_error is not None:
        lines.append("There was an error fetching the activities. Try again later!")

    lines.append("")
    lines.append("What do you want to play tonight?" if state.can_vote else "Our Activities")
    for activity, count in state.vote_tally():
        marks = []
        if state.player_vote_for(activity.id):
            marks.append("voted")
        if state.is_favorite(activity.id):
            marks.append("favorite")
        metadata = state.metadata_for(activity.id)
        if metadata and metadata.is_setup:
            marks.append("set up")
        suffix = f" [{', '.join(marks)}]" if marks else ""
        votes = f" {count} vote{'s' if count != 1 else ''}" if state.active_event else ""
        lines.append(f"  #{activity.id} {activity.name} ({activity.formatted_price}){votes}{suffix}")
    return "\n".join(lines)


@asynccontextmanager
async def open_store(settings: Settings) -> AsyncIterator[tuple[RemoteDataClient, GameNightStore]]:
    remote = SupabaseClient.from_settings(settings)
    store = GameNightStore(remote, active_event_mode=settings.active_event_mode)
    try:
        try:
            await remote.auth.ensure_fresh()
        except AuthError as e:
            logger.warning("Session refresh failed; continuing signed out", error=str(e))
            remote.auth.sign_out_locally()
        await store.start()
        await store.wait_settled(timeout=settings.request_timeout * 3)
        yield remote, store
    finally:
        await store.close()
        await remote.aclose()


def _actions(remote: RemoteDataClient, settings: Settings, assume_yes: bool = False) -> GameNightActions:
    return GameNightActions(
        remote,
        ClickNotifier(),
        make_confirmer(assume_yes),
        oauth_provider=settings.oauth_provider,
        oauth_redirect_url=settings.oauth_redirect_url,
    )


def _fail(message: str) -> NoReturn:
    click.secho(message, fg="red", err=True)
    raise SystemExit(1)


def _require_player(state: ViewState, needs_event: bool = False) -> None:
    if state.user is None:
        _fail("Not signed in. Run 'gamenight login' first.")
    if state.player is None:
        _fail("Your account is pending verification.")
    if needs_event and state.active_event is None:
        _fail("No game night tonight!")


@click.group()
@click.version_option(version="0.1.0", prog_name="gamenight")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides GAMENIGHT_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """gamenight - vote on and RSVP to tonight's game night."""
    settings = get_settings()
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.option("--open", "open_browser", is_flag=True, help="Open the URL in a browser")
@click.pass_obj
def login(settings: Settings, open_browser: bool) -> None:
    """Print the URL that starts sign-in with the OAuth provider."""
    remote = SupabaseClient.from_settings(settings)
    url = _actions(remote, settings).sign_in()
    asyncio.run(remote.aclose())
    if url is None:
        raise SystemExit(1)
    click.echo(url)
    click.echo("After signing in, run: gamenight callback '<redirected URL>'", err=True)
    if open_browser:
        import webbrowser

        webbrowser.open(url)


@cli.command()
@click.argument("redirect_url")
@click.pass_obj
def callback(settings: Settings, redirect_url: str) -> None:
    """Finish sign-in with the URL the provider redirected to."""

    async def run() -> bool:
        remote = SupabaseClient.from_settings(settings)
        try:
            session = await _actions(remote, settings).complete_sign_in(redirect_url)
            return session is not None
        finally:
            await remote.aclose()

    if not asyncio.run(run()):
        raise SystemExit(1)


@cli.command()
@click.pass_obj
def logout(settings: Settings) -> None:
    """Sign out and forget the stored session."""

    async def run() -> None:
        remote = SupabaseClient.from_settings(settings)
        try:
            await _actions(remote, settings).sign_out()
        finally:
            await remote.aclose()

    asyncio.run(run())


@cli.command()
@click.pass_obj
def status(settings: Settings) -> None:
    """Show tonight's game night, votes and RSVPs."""

    async def run() -> None:
        async with open_store(settings) as (_, store):
            click.echo(render_state(store.state))

    asyncio.run(run())


@cli.command()
@click.option("--tick", default=60.0, show_default=True, help="Seconds between active-event re-checks")
@click.pass_obj
def watch(settings: Settings, tick: float) -> None:
    """Keep printing the view state as it changes. Ctrl+C to stop."""

    async def run() -> None:
        async with open_store(settings) as (_, store):
            def show(state: ViewState) -> None:
                click.echo(render_state(state))
                click.echo("-" * 40)

            store.subscribe(show)
            show(store.state)
            while True:
                await asyncio.sleep(tick)
                store.tick()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped watching")


@cli.command()
@click.argument("activity_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="RSVP without asking when needed")
@click.pass_obj
def vote(settings: Settings, activity_id: int, yes: bool) -> None:
    """Vote for an activity, or take your vote back."""

    async def run() -> bool:
        async with open_store(settings) as (remote, store):
            state = store.state
            _require_player(state, needs_event=True)
            if state.activity(activity_id) is None:
                _fail(f"No activity #{activity_id}.")
            return await _actions(remote, settings, yes).toggle_vote(state, activity_id)

    if not asyncio.run(run()):
        raise SystemExit(1)


@cli.command()
@click.pass_obj
def rsvp(settings: Settings) -> None:
    """RSVP for tonight, or take your RSVP back."""

    async def run() -> bool:
        async with open_store(settings) as (remote, store):
            _require_player(store.state, needs_event=True)
            return await _actions(remote, settings).toggle_rsvp(store.state)

    if not asyncio.run(run()):
        raise SystemExit(1)


@cli.command()
@click.argument("activity_id", type=int)
@click.pass_obj
def favorite(settings: Settings, activity_id: int) -> None:
    """Toggle an activity as a favorite."""

    async def run() -> bool:
        async with open_store(settings) as (remote, store):
            _require_player(store.state)
            return await _actions(remote, settings).toggle_favorite(store.state, activity_id)

    if not asyncio.run(run()):
        raise SystemExit(1)


@cli.command()
@click.argument("activity_id", type=int)
@click.option("--undo", is_flag=True, help="Mark as not set up")
@click.pass_obj
def setup(settings: Settings, activity_id: int, undo: bool) -> None:
    """Mark an activity as installed and ready to play."""

    async def run() -> bool:
        async with open_store(settings) as (remote, store):
            _require_player(store.state)
            return await _actions(remote, settings).set_setup(store.state, activity_id, not undo)

    if not asyncio.run(run()):
        raise SystemExit(1)


@cli.command()
@click.option("--name", required=True, help="Display name (2-30 characters)")
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    type=click.Choice(list(PLATFORMS)),
    help="A device you can play on; repeat for several",
)
@click.pass_obj
def profile(settings: Settings, name: str, platforms: tuple[str, ...]) -> None:
    """Edit your player profile."""

    async def run() -> bool:
        async with open_store(settings) as (remote, store):
            _require_player(store.state)
            return await _actions(remote, settings).update_profile(store.state, name, list(platforms))

    if not asyncio.run(run()):
        raise SystemExit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
