import asyncio, logging, random, time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.catalog import Card
from core.constants import FIRST_PACK_BADGE, PACK_LAYOUT
from core.cooldown import check_user_cooldown, record_use
from core.errors import NotFound, RateLimited
from core.state import AppState

logger = logging.getLogger(__name__)

def rarity_tier(rarity: Optional[str]) -> Optional[str]:
    r = (rarity or "").strip()
    if r == "Common":
        return "common"
    if r == "Uncommon":
        return "uncommon"
    if "Rare" in r:
        return "rare"
    return None

def draw_pack(candidates: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Draw a booster: per tier, sample without replacement (short tiers give what they have)."""
    rng = rng or random.Random()
    tiers: Dict[str, List[Card]] = defaultdict(list)
    for card in candidates:
        tier = rarity_tier(card.rarity)
        if tier:
            tiers[tier].append(card)
    pulls: List[Card] = []
    for tier, count in PACK_LAYOUT:
        pool = tiers.get(tier, [])
        pulls.extend(rng.sample(pool, min(count, len(pool))))
    return pulls

def apply_to_collection(collections: dict, user_id, set_id: str, cards: Sequence[Card]) -> Dict[str, int]:
    """Add one copy of each drawn card to the user's collection. Returns per-key increments."""
    added: Dict[str, int] = defaultdict(int)
    user_sets = collections.setdefault(str(user_id), {})
    owned = user_sets.setdefault(set_id, {})
    for card in cards:
        owned[card.key] = owned.get(card.key, 0) + 1
        added[card.key] += 1
    return dict(added)

def normalize_set_id(set_id: str) -> str:
    return (set_id or "").strip().upper()

def now_ms() -> int:
    return int(time.time() * 1000)

@dataclass
class PackOpening:
    set_id: str
    cards: List[Card]
    new_badges: List[str] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def hit(self) -> Optional[Card]:
        """The rare slot, or None when the set had no rare to draw."""
        rares = [c for c in self.cards if rarity_tier(c.rarity) == "rare"]
        return rares[-1] if rares else None

async def open_pack(
    state: AppState,
    user_id,
    set_id: str,
    *,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> PackOpening:
    """
    Open one booster of ``set_id`` for ``user_id``.
    Raises RateLimited while the cooldown runs, NotFound when the set has no cards and
    ProviderUnavailable when the catalog can't be reached. None of those touch any state.
    """
    store = state.store
    uid = str(user_id)
    sid = normalize_set_id(set_id)
    ts = now_ms() if now is None else int(now)

    check = check_user_cooldown(store.load("cooldowns"), uid, ts, state.cooldown_ms)
    if not check.allowed:
        raise RateLimited(check.remaining_ms)

    candidates = await asyncio.to_thread(state.provider.list_cards, sid)
    if not candidates:
        raise NotFound(f"Set {sid} not found.")
    cards = draw_pack(candidates, rng)
    if not cards:
        raise NotFound(f"Set {sid} has no booster cards.")

    async with store.lock("cooldowns"), store.lock("collections"), store.lock("stats"), store.lock("badges"):
        # re-read: another opening may have landed while we were fetching
        cooldowns = store.load("cooldowns")
        check = check_user_cooldown(cooldowns, uid, ts, state.cooldown_ms)
        if not check.allowed:
            raise RateLimited(check.remaining_ms)

        collections = store.load("collections")
        apply_to_collection(collections, uid, sid, cards)
        store.save("collections", collections)

        record_use(cooldowns, uid, ts)
        store.save("cooldowns", cooldowns)

        stats = store.load("stats")
        row = stats.setdefault(uid, {"openers": 0, "trades": 0})
        row["openers"] = int(row.get("openers", 0)) + 1
        store.save("stats", stats)

        new_badges: List[str] = []
        badges = store.load("badges")
        owned = badges.setdefault(uid, [])
        if FIRST_PACK_BADGE not in owned:
            owned.append(FIRST_PACK_BADGE)
            new_badges.append(FIRST_PACK_BADGE)
            store.save("badges", badges)

    logger.info("user %s opened %s: %d card(s)", uid, sid, len(cards))
    return PackOpening(set_id=sid, cards=cards, new_badges=new_badges, stats=dict(row))
