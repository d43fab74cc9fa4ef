"""Tests for the background price reconciliation."""

import asyncio

import pytest

from core import catalog as catalog_module
from core.catalog import PokemonTCGClient
from core.price_watch import PriceChange, PriceWatcher, format_price_change
from core.state import AppState

from conftest import FakeResponse


class Inbox:
    def __init__(self, fail_for=()):
        self.messages = []
        self.fail_for = set(fail_for)

    async def __call__(self, user_id, message):
        if user_id in self.fail_for:
            raise RuntimeError("DMs closed")
        self.messages.append((user_id, message))


@pytest.fixture
def inbox() -> Inbox:
    return Inbox()


def watch(state, entries):
    state.store.save("watches", entries)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_price_change_notifies_once_and_updates(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/12", "lastPrice": 10}]})
        provider.prices["SV1/12"] = 12
        watcher = PriceWatcher(state, inbox)

        report = await watcher.run_once()
        assert report.changes == [PriceChange("7", "SV1/12", 10, 12)]
        assert inbox.messages == [("7", format_price_change(PriceChange("7", "SV1/12", 10, 12)))]
        assert "10" in inbox.messages[0][1] and "12" in inbox.messages[0][1]
        assert state.store.load("watches") == {"7": [{"key": "SV1/12", "lastPrice": 12}]}

        report = await watcher.run_once()
        assert report.changed == 0
        assert len(inbox.messages) == 1

    @pytest.mark.asyncio
    async def test_unchanged_price_does_not_write(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/12", "lastPrice": 10}]})
        provider.prices["SV1/12"] = 10
        path = state.store.path("watches")
        before = path.stat().st_mtime_ns

        report = await PriceWatcher(state, inbox).run_once()
        assert report.checked == 1 and report.changed == 0
        assert inbox.messages == []
        assert path.stat().st_mtime_ns == before

    @pytest.mark.asyncio
    async def test_provider_failure_skips_only_that_entry(self, state, provider, inbox, unavailable):
        watch(state, {
            "7": [{"key": "SV1/1", "lastPrice": 1}, {"key": "SV1/2", "lastPrice": 2}],
            "8": [{"key": "SV1/3", "lastPrice": 3}],
        })
        provider.prices.update({"SV1/1": unavailable, "SV1/2": 5, "SV1/3": 6})

        report = await PriceWatcher(state, inbox).run_once()
        assert report.checked == 3
        assert report.skipped == 1
        assert [(c.key, c.new_price) for c in report.changes] == [("SV1/2", 5), ("SV1/3", 6)]
        watches = state.store.load("watches")
        assert watches["7"][0] == {"key": "SV1/1", "lastPrice": 1}
        assert watches["7"][1]["lastPrice"] == 5

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error_skips_only_that_entry(self, state, provider, inbox):
        watch(state, {
            "7": [{"key": "SV1/1", "lastPrice": 1}],
            "8": [{"key": "SV1/2", "lastPrice": 2}],
        })
        provider.prices.update({"SV1/1": RuntimeError("boom"), "SV1/2": 5})

        report = await PriceWatcher(state, inbox).run_once()
        assert report.checked == 2 and report.skipped == 1
        assert report.changes == [PriceChange("8", "SV1/2", 2, 5)]
        assert [uid for uid, _ in inbox.messages] == ["8"]
        watches = state.store.load("watches")
        assert watches["7"][0] == {"key": "SV1/1", "lastPrice": 1}
        assert watches["8"][0]["lastPrice"] == 5

    @pytest.mark.asyncio
    async def test_malformed_api_card_does_not_stop_the_tick(self, tmp_path, inbox, monkeypatch):
        def fake_get(url, params=None, headers=None, timeout=None):
            number = params["q"].split("number:")[1].split()[0]
            card = {"name": f"Card {number}", "number": number, "set": {"id": "sv1"},
                    "cardmarket": {"prices": {"averageSellPrice": 5}}}
            if number == "1":
                card["set"] = "sv1"
            return FakeResponse({"data": [card]})

        monkeypatch.setattr(catalog_module.requests, "get", fake_get)
        state = AppState(data_dir=str(tmp_path / "data"), provider=PokemonTCGClient(api_key=""))
        watch(state, {
            "7": [{"key": "SV1/1", "lastPrice": 1}],
            "8": [{"key": "SV1/2", "lastPrice": 2}],
        })

        report = await PriceWatcher(state, inbox).run_once()
        assert report.skipped == 1 and report.pruned == 0
        assert [(c.user_id, c.key, c.new_price) for c in report.changes] == [("8", "SV1/2", 5)]
        assert [uid for uid, _ in inbox.messages] == ["8"]
        assert state.store.load("watches")["7"][0]["lastPrice"] == 1

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_block_siblings(self, state, provider):
        inbox = Inbox(fail_for={"7"})
        watch(state, {
            "7": [{"key": "SV1/1", "lastPrice": 1}],
            "8": [{"key": "SV1/1", "lastPrice": 1}],
        })
        provider.prices["SV1/1"] = 2

        report = await PriceWatcher(state, inbox).run_once()
        assert report.changed == 2
        assert [uid for uid, _ in inbox.messages] == ["8"]
        watches = state.store.load("watches")
        assert watches["7"][0]["lastPrice"] == 2
        assert watches["8"][0]["lastPrice"] == 2

    @pytest.mark.asyncio
    async def test_missing_card_leaves_price_untouched(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/1", "lastPrice": 3}]})
        provider.prices["SV1/1"] = None  # card lookup returns nothing
        report = await PriceWatcher(state, inbox, prune_after_misses=0).run_once()
        assert report.skipped == 1
        assert state.store.load("watches")["7"][0]["lastPrice"] == 3

    @pytest.mark.asyncio
    async def test_missing_card_is_pruned_after_consecutive_misses(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/404", "lastPrice": 3}, {"key": "SV1/1", "lastPrice": 1}]})
        provider.prices["SV1/1"] = 1
        watcher = PriceWatcher(state, inbox, prune_after_misses=3)

        for _ in range(2):
            report = await watcher.run_once()
            assert report.pruned == 0
        report = await watcher.run_once()
        assert report.pruned == 1
        assert state.store.load("watches") == {"7": [{"key": "SV1/1", "lastPrice": 1}]}
        assert len(inbox.messages) == 1 and "SV1/404" in inbox.messages[0][1]

    @pytest.mark.asyncio
    async def test_found_again_resets_miss_count(self, state, provider, inbox, unavailable):
        watch(state, {"7": [{"key": "SV1/5", "lastPrice": 3}]})
        watcher = PriceWatcher(state, inbox, prune_after_misses=2)

        await watcher.run_once()  # miss 1
        provider.prices["SV1/5"] = 3
        await watcher.run_once()  # found, reset
        del provider.prices["SV1/5"]
        report = await watcher.run_once()  # miss 1 again
        assert report.pruned == 0

        provider.prices["SV1/5"] = unavailable
        report = await watcher.run_once()  # provider errors never count
        assert report.pruned == 0
        assert state.store.load("watches")["7"][0]["key"] == "SV1/5"

    @pytest.mark.asyncio
    async def test_entry_removed_meanwhile_is_left_alone(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/1", "lastPrice": 1}]})

        def find_card(set_id, number, language=None):
            # the user unwatches while the lookup is in flight
            state.store.save("watches", {"7": []})
            return type(provider).find_card(provider, set_id, number)

        provider.prices["SV1/1"] = 9
        provider.find_card = find_card
        report = await PriceWatcher(state, inbox).run_once()
        assert report.changed == 0
        assert inbox.messages == []
        assert state.store.load("watches") == {"7": []}


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_ticks_after_each_interval_and_stops(self, state, provider, inbox):
        watch(state, {"7": [{"key": "SV1/1", "lastPrice": 1}]})
        prices = iter([2, 3])
        provider.prices["SV1/1"] = next(prices)
        sleeps = []
        ticked = asyncio.Event()

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 3:
                ticked.set()
                await asyncio.Event().wait()  # park until cancelled
            if len(sleeps) == 2:
                provider.prices["SV1/1"] = next(prices)

        watcher = PriceWatcher(state, inbox, interval=3600, sleep=fake_sleep)
        watcher.start()
        assert watcher.running
        await asyncio.wait_for(ticked.wait(), timeout=5)
        await watcher.stop()

        assert not watcher.running
        assert sleeps == [3600, 3600, 3600]
        assert [m for _, m in inbox.messages] == ["🔔 SV1/1: 1€ → 2€", "🔔 SV1/1: 2€ → 3€"]

    @pytest.mark.asyncio
    async def test_tick_exception_does_not_kill_loop(self, state, inbox, monkeypatch):
        calls = []
        done = asyncio.Event()

        async def boom():
            calls.append(1)
            if len(calls) == 2:
                done.set()
            raise RuntimeError("disk on fire")

        async def no_sleep(_seconds):
            await asyncio.sleep(0)

        watcher = PriceWatcher(state, inbox, sleep=no_sleep)
        monkeypatch.setattr(watcher, "run_once", boom)
        watcher.start()
        await asyncio.wait_for(done.wait(), timeout=5)
        await watcher.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, state, inbox):
        watcher = PriceWatcher(state, inbox)
        await watcher.stop()
        assert not watcher.running
