# core/watches.py
from __future__ import annotations

import asyncio
import enum
import logging
from typing import Dict, List, Optional, Tuple

from core.errors import ProviderUnavailable
from core.state import AppState

logger = logging.getLogger(__name__)


class WatchToggle(enum.Enum):
    WATCHING = "watching"
    UNWATCHING = "unwatching"


def card_key(set_id: str, number: str) -> str:
    return f"{(set_id or '').strip()}/{(number or '').strip()}"


def split_card_key(key: str) -> Tuple[str, str]:
    set_id, _, number = (key or "").partition("/")
    return set_id, number


def find_entry(watches: Dict[str, list], user_id, key: str) -> Optional[dict]:
    for entry in watches.get(str(user_id), []):
        if entry.get("key") == key:
            return entry
    return None


def watched_entries(state: AppState, user_id) -> List[dict]:
    return list(state.store.load("watches").get(str(user_id), []))


def is_watching(state: AppState, user_id, key: str) -> bool:
    return find_entry(state.store.load("watches"), user_id, key) is not None


async def current_price(state: AppState, set_id: str, number: str) -> float:
    """Latest average sell price, or 0 when the card/price can't be resolved."""
    try:
        card = await asyncio.to_thread(state.provider.find_card, set_id, number)
    except ProviderUnavailable as e:
        logger.warning("Price lookup for %s/%s failed: %s", set_id, number, e)
        return 0
    except Exception:
        logger.exception("Price lookup for %s/%s raised", set_id, number)
        return 0
    if card is None or card.price is None:
        return 0
    return card.price


async def toggle_watch(state: AppState, user_id, set_id: str, number: str) -> WatchToggle:
    """Flip the user's watch on a card: remove it if present, add it otherwise."""
    store = state.store
    uid = str(user_id)
    key = card_key(set_id, number)

    async with store.lock("watches"):
        watches = store.load("watches")
        if find_entry(watches, uid, key) is not None:
            watches[uid] = [w for w in watches.get(uid, []) if w.get("key") != key]
            store.save("watches", watches)
            return WatchToggle.UNWATCHING

    # network lookup outside the lock; the loop or other clicks may run meanwhile
    price = await current_price(state, set_id, number)

    async with store.lock("watches"):
        watches = store.load("watches")
        if find_entry(watches, uid, key) is None:
            watches.setdefault(uid, []).append({"key": key, "lastPrice": price})
            store.save("watches", watches)
    return WatchToggle.WATCHING


__all__ = [
    "WatchToggle",
    "card_key",
    "split_card_key",
    "find_entry",
    "watched_entries",
    "is_watching",
    "current_price",
    "toggle_watch",
]
