"""Background reconciliation of watched card prices.

Every ``interval`` seconds the watcher re-reads the watch lists, asks the
provider for each watched card's current price and, when it moved, stores the
new price and DMs the owner. Each entry is handled on its own: a provider
error, a vanished entry or a failed DM only affects that entry.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Tuple

from core.constants import WATCH_INTERVAL_SECONDS, WATCH_PRUNE_AFTER_MISSES
from core.errors import ProviderUnavailable
from core.state import AppState
from core.watches import find_entry, split_card_key

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], Awaitable[None]]


@dataclass(frozen=True)
class PriceChange:
    user_id: str
    key: str
    old_price: float
    new_price: float


@dataclass
class TickReport:
    checked: int = 0
    skipped: int = 0
    pruned: int = 0
    changes: List[PriceChange] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.changes)


def format_price_change(change: PriceChange) -> str:
    return f"🔔 {change.key}: {change.old_price}€ → {change.new_price}€"


def format_pruned(key: str) -> str:
    return f"🔕 {key} could not be found any more and was removed from your watch list."


class PriceWatcher:
    def __init__(
        self,
        state: AppState,
        notify: Notifier,
        *,
        interval: float = WATCH_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        prune_after_misses: int = WATCH_PRUNE_AFTER_MISSES,
    ):
        self.state = state
        self.notify = notify
        self.interval = interval
        self.prune_after_misses = prune_after_misses
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._misses: Dict[Tuple[str, str], int] = {}

    # ---------- lifecycle ----------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name="price-watch")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _loop(self):
        while True:
            await self._sleep(self.interval)
            try:
                report = await self.run_once()
                logger.info(
                    "price watch: checked=%d changed=%d skipped=%d pruned=%d",
                    report.checked, report.changed, report.skipped, report.pruned,
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("price watch tick failed")

    # ---------- one pass ----------

    async def run_once(self) -> TickReport:
        report = TickReport()
        async with self.state.store.lock("watches"):
            snapshot = self.state.store.load("watches")

        live = {(uid, e["key"]) for uid, entries in snapshot.items() for e in entries}
        self._misses = {k: v for k, v in self._misses.items() if k in live}
        for uid, entries in snapshot.items():
            for entry in entries:
                report.checked += 1
                await self._check_entry(uid, entry["key"], report)
        return report

    async def _check_entry(self, uid: str, key: str, report: TickReport) -> None:
        set_id, number = split_card_key(key)
        try:
            card = await asyncio.to_thread(self.state.provider.find_card, set_id, number)
        except ProviderUnavailable as e:
            logger.warning("price watch: skipping %s for %s: %s", key, uid, e)
            report.skipped += 1
            return
        except Exception:
            logger.exception("price watch: lookup of %s for %s raised", key, uid)
            report.skipped += 1
            return

        if card is None:
            report.skipped += 1
            await self._record_miss(uid, key, report)
            return
        self._misses.pop((uid, key), None)

        new_price = card.price if card.price is not None else 0
        store = self.state.store
        async with store.lock("watches"):
            watches = store.load("watches")
            current = find_entry(watches, uid, key)
            if current is None or current["lastPrice"] == new_price:
                return
            change = PriceChange(uid, key, current["lastPrice"], new_price)
            current["lastPrice"] = new_price
            store.save("watches", watches)

        report.changes.append(change)
        await self._send(uid, format_price_change(change))

    async def _record_miss(self, uid: str, key: str, report: TickReport) -> None:
        misses = self._misses.get((uid, key), 0) + 1
        self._misses[(uid, key)] = misses
        if self.prune_after_misses <= 0 or misses < self.prune_after_misses:
            return

        store = self.state.store
        async with store.lock("watches"):
            watches = store.load("watches")
            if find_entry(watches, uid, key) is None:
                self._misses.pop((uid, key), None)
                return
            watches[uid] = [w for w in watches.get(uid, []) if w.get("key") != key]
            store.save("watches", watches)
        self._misses.pop((uid, key), None)
        report.pruned += 1
        logger.info("price watch: pruned %s for %s after %d misses", key, uid, misses)
        await self._send(uid, format_pruned(key))

    async def _send(self, uid: str, message: str) -> None:
        try:
            await self.notify(uid, message)
        except Exception:
            logger.warning("price watch: could not notify user %s", uid, exc_info=True)


__all__ = ["PriceChange", "PriceWatcher", "TickReport", "format_price_change"]
