# core/catalog.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from core.constants import (
    CARDS_PAGE_SIZE,
    POKEMONTCG_API_KEY,
    POKEMONTCG_API_URL,
    PREFERRED_LANGUAGE,
    PROVIDER_TIMEOUT_SECONDS,
    SETS_PAGE_SIZE,
)
from core.errors import ProviderUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Card:
    set_id: str
    number: str
    name: str
    rarity: str = ""
    image_url: str = ""
    set_name: str = ""
    prices: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def key(self) -> str:
        return f"{self.set_id}/{self.number}"

    @property
    def price(self) -> Optional[float]:
        """Cardmarket average sell price, or None when the API has none."""
        val = self.prices.get("averageSellPrice")
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            return None
        return val

    @classmethod
    def from_api(cls, payload: dict) -> "Card":
        cset = payload.get("set") or {}
        images = payload.get("images") or {}
        market = payload.get("cardmarket") or {}
        return cls(
            set_id=str(cset.get("id") or "").strip(),
            number=str(payload.get("number") or "").strip(),
            name=(payload.get("name") or "").strip(),
            rarity=(payload.get("rarity") or "").strip(),
            image_url=images.get("large") or images.get("small") or "",
            set_name=(cset.get("name") or "").strip(),
            prices=dict(market.get("prices") or {}),
        )


@dataclass(frozen=True)
class CardSet:
    id: str
    name: str
    series: str = ""
    release_date: str = ""

    @classmethod
    def from_api(cls, payload: dict) -> "CardSet":
        return cls(
            id=str(payload.get("id") or "").strip(),
            name=(payload.get("name") or "").strip(),
            series=(payload.get("series") or "").strip(),
            release_date=(payload.get("releaseDate") or "").strip(),
        )


def _release_sort_key(release_date: str) -> str:
    # API dates are "YYYY/MM/DD"; lexical order is chronological.
    return (release_date or "").replace("-", "/")


class PokemonTCGClient:
    """Blocking Pokémon TCG API client; run it through ``asyncio.to_thread``."""

    def __init__(
        self,
        base_url: str = POKEMONTCG_API_URL,
        *,
        api_key: str = POKEMONTCG_API_KEY,
        timeout: float = PROVIDER_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _get(self, path: str, params: dict) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            if resp.status_code == 404:
                return {"data": [], "totalCount": 0}
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Pokémon TCG API request failed ({path}): {e}") from e
        except ValueError as e:
            raise ProviderUnavailable(f"Pokémon TCG API returned invalid JSON ({path})") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise ProviderUnavailable(f"Unexpected Pokémon TCG API payload ({path})")
        return payload

    @staticmethod
    def _parse(factory, item: dict, path: str):
        try:
            return factory(item)
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderUnavailable(f"Malformed Pokémon TCG API record ({path}): {e}") from e

    def list_cards(self, set_id: str) -> List[Card]:
        """Every card of a set; an unknown set yields an empty list."""
        sid = (set_id or "").strip()
        if not sid:
            return []
        cards: List[Card] = []
        page = 1
        while True:
            payload = self._get("cards", {
                "q": f"set.id:{sid}",
                "pageSize": CARDS_PAGE_SIZE,
                "page": page,
            })
            batch = payload["data"]
            cards.extend(self._parse(Card.from_api, c, "cards") for c in batch if isinstance(c, dict))
            total = self._parse(lambda p: int(p.get("totalCount") or 0), payload, "cards")
            if not batch or len(cards) >= total:
                break
            page += 1
        return cards

    def find_card(self, set_id: str, number: str, language: str | None = PREFERRED_LANGUAGE) -> Optional[Card]:
        queries = []
        if language:
            queries.append(f"set.id:{set_id} number:{number} language:{language}")
        queries.append(f"set.id:{set_id} number:{number}")
        for q in queries:
            payload = self._get("cards", {"q": q, "pageSize": 1})
            data = [c for c in payload["data"] if isinstance(c, dict)]
            if data:
                return self._parse(Card.from_api, data[0], "cards")
        return None

    def list_sets(self) -> List[CardSet]:
        payload = self._get("sets", {"pageSize": SETS_PAGE_SIZE})
        sets = [self._parse(CardSet.from_api, s, "sets") for s in payload["data"] if isinstance(s, dict)]
        sets = [s for s in sets if s.id]
        sets.sort(key=lambda s: _release_sort_key(s.release_date), reverse=True)
        return sets


class SetCatalog:
    """Cached list of sets, newest first, with an explicit refresh."""

    def __init__(self, provider, clock=time.time):
        self.provider = provider
        self._clock = clock
        self._sets: List[CardSet] = []
        self._by_id: Dict[str, CardSet] = {}
        self.as_of: float | None = None

    @property
    def sets(self) -> List[CardSet]:
        return list(self._sets)

    def refresh(self) -> bool:
        """Reload from the provider; on failure the previous data is kept."""
        try:
            sets = self.provider.list_sets()
        except ProviderUnavailable as e:
            logger.error("Set catalog refresh failed: %s", e)
            return False
        self._sets = list(sets)
        self._by_id = {s.id.casefold(): s for s in self._sets}
        self.as_of = self._clock()
        logger.info("Loaded %d sets", len(self._sets))
        return True

    def is_stale(self, max_age_seconds: float) -> bool:
        if self.as_of is None:
            return True
        return (self._clock() - self.as_of) >= max_age_seconds

    def get(self, set_id: str) -> Optional[CardSet]:
        return self._by_id.get((set_id or "").strip().casefold())

    def search(self, query: str | None = None, limit: int | None = None) -> List[CardSet]:
        q = (query or "").strip().casefold()
        if q:
            found = [
                s for s in self._sets
                if q in s.id.casefold() or q in s.name.casefold() or q in s.series.casefold()
            ]
        else:
            found = list(self._sets)
        return found[:limit] if limit else found


__all__ = ["Card", "CardSet", "PokemonTCGClient", "SetCatalog"]
