"""Unit tests for the row-set live watcher."""

import asyncio

import pytest

from fakes import InMemoryRemote, spin
from gamenight.application import DISABLED, LiveRows, RowFilters
from gamenight.core.filters import Filter
from gamenight.domain.tables import ACTIVITIES, VOTES, WITH_PLAYER_NAME
from gamenight.infrastructure.remote import ChangeEvent, ChangeType, RemoteDataError


def votes_watcher(remote: InMemoryRemote, event_id: int = 2) -> LiveRows:
    return LiveRows(remote, VOTES, RowFilters.equal("event_id", event_id), projection=WITH_PLAYER_NAME)


class TestInitialFetch:
    """Tests for fetching and settling a scope."""

    @pytest.mark.asyncio
    async def test_fetches_all_rows_and_subscribes(self, signed_in_remote) -> None:
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        assert watcher.is_loading is True

        watcher.start()
        await watcher.wait_settled()

        assert [a.id for a in watcher.rows] == [10, 11, 12]
        assert watcher.is_loading is False
        assert watcher.error is None
        assert watcher.is_live is True
        assert [c.filter for c in signed_in_remote.open_channels("activities")] == [None]

        await watcher.close()
        assert signed_in_remote.open_channels() == []

    @pytest.mark.asyncio
    async def test_scope_filters_fetch_and_subscription(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote)
        watcher.start()
        await watcher.wait_settled()

        assert [v.id for v in watcher.rows] == [100]
        assert watcher.rows[0].player_name == "Grace"
        assert [c.filter for c in signed_in_remote.open_channels("votes")] == ["event_id=eq.2"]
        await watcher.close()

    @pytest.mark.asyncio
    async def test_disabled_scope_is_empty_and_idle(self, signed_in_remote) -> None:
        watcher = LiveRows(signed_in_remote, VOTES, DISABLED)
        watcher.start()
        await watcher.wait_settled()

        assert watcher.rows == ()
        assert watcher.is_loading is False
        assert "votes" not in signed_in_remote.select_count
        assert signed_in_remote.open_channels() == []
        await watcher.close()

    @pytest.mark.asyncio
    async def test_fetch_failure_sets_error(self, signed_in_remote) -> None:
        signed_in_remote.failures.add(("select", "activities"))
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        watcher.start()
        await watcher.wait_settled()

        assert watcher.rows == ()
        assert isinstance(watcher.error, RemoteDataError)
        assert watcher.is_loading is False
        await watcher.close()

    @pytest.mark.asyncio
    async def test_subscription_failure_leaves_rows_stale(self, signed_in_remote) -> None:
        signed_in_remote.fail_subscribe.add("activities")
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        watcher.start()
        await watcher.wait_settled()

        assert len(watcher.rows) == 3
        assert watcher.is_live is False

        await signed_in_remote.insert("activities", {"name": "Jackbox", "type": "video_game"})
        await spin()
        assert len(watcher.rows) == 3
        await watcher.close()

    @pytest.mark.asyncio
    async def test_malformed_rows_are_dropped(self, remote) -> None:
        remote.seed("activities", {"id": 1, "name": "Catan", "type": "board_game"}, {"id": 2})
        watcher = LiveRows(remote, ACTIVITIES)
        watcher.start()
        await watcher.wait_settled()

        assert [a.id for a in watcher.rows] == [1]
        await watcher.close()


class TestChangeEvents:
    """Tests for applying change events to the cache."""

    @pytest.mark.asyncio
    async def test_insert_update_delete_round_trip(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote)
        watcher.start()
        await watcher.wait_settled()

        await signed_in_remote.insert(
            "votes", {"id": 7, "event_id": 2, "activity_id": 10, "player_id": "user-1"}
        )
        await spin()
        assert [v.id for v in watcher.rows] == [100, 7]
        assert watcher.rows[1].player_name == "Ada"

        await signed_in_remote.update("votes", {"activity_id": 12}, [Filter.eq("id", 7)])
        await spin()
        assert watcher.rows[1].activity_id == 12
        # The change event carries no joined fields; the cached ones survive
        assert watcher.rows[1].player_name == "Ada"

        await signed_in_remote.delete("votes", [Filter.eq("id", 7)])
        await spin()
        assert [v.id for v in watcher.rows] == [100]
        await watcher.close()

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_ignored(self, signed_in_remote) -> None:
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        watcher.start()
        await watcher.wait_settled()
        before = watcher.rows

        signed_in_remote.emit(
            ChangeEvent(ChangeType.INSERT, "activities", new={"id": 10, "name": "Other", "type": "x"})
        )
        await spin()

        assert watcher.rows is before
        await watcher.close()

    @pytest.mark.asyncio
    async def test_update_and_delete_of_unknown_rows_are_ignored(self, signed_in_remote) -> None:
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        watcher.start()
        await watcher.wait_settled()
        before = watcher.rows

        signed_in_remote.emit(
            ChangeEvent(ChangeType.UPDATE, "activities", new={"id": 99, "name": "Ghost", "type": "x"})
        )
        signed_in_remote.emit(ChangeEvent(ChangeType.DELETE, "activities", old={"id": 98}))
        await spin()

        assert watcher.rows is before
        await watcher.close()

    @pytest.mark.asyncio
    async def test_events_during_fetch_apply_after_it(self, signed_in_remote) -> None:
        gate = asyncio.Event()
        signed_in_remote.gates["votes"] = gate
        watcher = votes_watcher(signed_in_remote)
        watcher.start()
        await spin()
        assert watcher.is_loading is True
        assert watcher.is_live is True

        # Both land after the fetch took its snapshot
        inserted = await signed_in_remote.insert(
            "votes", {"event_id": 2, "activity_id": 12, "player_id": "user-1"}
        )
        await signed_in_remote.delete("votes", [Filter.eq("id", 100)])

        gate.set()
        await watcher.wait_settled()
        await spin()

        assert [v.id for v in watcher.rows] == [inserted[0]["id"]]
        await watcher.close()

    @pytest.mark.asyncio
    async def test_listeners_notified_only_on_change(self, signed_in_remote) -> None:
        watcher = LiveRows(signed_in_remote, ACTIVITIES)
        calls = []
        watcher.add_listener(calls.append)
        watcher.start()
        await watcher.wait_settled()
        settled_calls = len(calls)

        signed_in_remote.emit(
            ChangeEvent(ChangeType.INSERT, "activities", new={"id": 10, "name": "Dup", "type": "x"})
        )
        await spin()
        assert len(calls) == settled_calls

        await signed_in_remote.insert("activities", {"name": "Jackbox", "type": "video_game"})
        await spin()
        assert len(calls) == settled_calls + 1
        await watcher.close()


class TestRescoping:
    """Tests for switching scopes."""

    @pytest.mark.asyncio
    async def test_new_scope_replaces_subscription(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote, event_id=2)
        watcher.start()
        await watcher.wait_settled()

        watcher.set_scope(RowFilters.equal("event_id", 1))
        await watcher.wait_settled()

        assert [v.id for v in watcher.rows] == [101]
        assert signed_in_remote.unsubscribe_count == 1
        assert [c.filter for c in signed_in_remote.open_channels("votes")] == ["event_id=eq.1"]

        await signed_in_remote.insert("votes", {"event_id": 2, "activity_id": 10, "player_id": "user-1"})
        await spin()
        assert [v.id for v in watcher.rows] == [101]
        await watcher.close()

    @pytest.mark.asyncio
    async def test_equal_scope_is_a_no_op(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote, event_id=2)
        watcher.start()
        await watcher.wait_settled()

        watcher.set_scope(RowFilters.equal("event_id", 2))

        assert watcher.is_settled
        assert signed_in_remote.select_count["votes"] == 1
        await watcher.close()

    @pytest.mark.asyncio
    async def test_superseded_fetch_is_discarded(self, signed_in_remote) -> None:
        gate = asyncio.Event()
        signed_in_remote.gates["votes"] = gate
        watcher = votes_watcher(signed_in_remote, event_id=2)
        watcher.start()
        await spin()

        watcher.set_scope(RowFilters.equal("event_id", 1))
        await spin()
        gate.set()
        await watcher.wait_settled()
        await spin()

        assert [v.event_id for v in watcher.rows] == [1]
        assert len(signed_in_remote.open_channels("votes")) == 1
        await watcher.close()

    @pytest.mark.asyncio
    async def test_disabling_clears_rows(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote)
        watcher.start()
        await watcher.wait_settled()

        watcher.set_scope(DISABLED)
        await spin()

        assert watcher.rows == ()
        assert watcher.is_loading is False
        assert signed_in_remote.open_channels("votes") == []
        await watcher.close()

    @pytest.mark.asyncio
    async def test_reenabling_waits_for_disabled_scope_release(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote)
        watcher.start()
        await watcher.wait_settled()
        signed_in_remote.unsubscribe_delay = 5

        watcher.set_scope(DISABLED)
        watcher.set_scope(RowFilters.equal("event_id", 2))
        await watcher.wait_settled()
        await spin()

        assert signed_in_remote.max_open["votes"] == 1
        assert [v.id for v in watcher.rows] == [100]
        await watcher.close()

    @pytest.mark.asyncio
    async def test_chained_rescopes_release_before_subscribing(self, signed_in_remote) -> None:
        watcher = votes_watcher(signed_in_remote, event_id=2)
        watcher.start()
        await watcher.wait_settled()
        signed_in_remote.unsubscribe_delay = 5

        watcher.set_scope(RowFilters.equal("event_id", 1))
        watcher.set_scope(RowFilters.equal("event_id", 3))
        await watcher.wait_settled()
        await spin()

        assert signed_in_remote.max_open["votes"] == 1
        assert watcher.rows == ()
        assert [c.filter for c in signed_in_remote.open_channels("votes")] == ["event_id=eq.3"]
        await watcher.close()
