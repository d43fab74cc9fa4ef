import pytest
import requests

from core.catalog import Card, CardSet
from core.errors import ProviderUnavailable
from core.state import AppState


class FakeProvider:
    """In-process stand-in for the Pokémon TCG API."""

    def __init__(self, cards=None, prices=None, sets=None):
        self.cards = cards or {}  # set_id -> [Card]
        self.prices = prices or {}  # "set/number" -> price | None (missing card) | Exception
        self.sets = sets or []
        self.calls = []

    def list_cards(self, set_id):
        self.calls.append(("list_cards", set_id))
        result = self.cards.get(set_id, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    def find_card(self, set_id, number, language=None):
        key = f"{set_id}/{number}"
        self.calls.append(("find_card", key))
        if key not in self.prices:
            return None
        price = self.prices[key]
        if isinstance(price, Exception):
            raise price
        if price is None:
            return None
        return Card(set_id=set_id, number=number, name=f"Card {key}",
                    prices={"averageSellPrice": price})

    def list_sets(self):
        if isinstance(self.sets, Exception):
            raise self.sets
        return list(self.sets)


class FakeResponse:
    """Minimal requests.Response for a monkeypatched requests.get."""

    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=None)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def make_card(number, rarity, set_id="sv1"):
    return Card(set_id=set_id, number=str(number), name=f"{rarity} #{number}", rarity=rarity,
                image_url=f"https://img.example/{set_id}/{number}.png")


def make_pool(commons=10, uncommons=5, rares=3, set_id="sv1"):
    cards = []
    n = 1
    for rarity, count in (("Common", commons), ("Uncommon", uncommons), ("Rare Holo", rares)):
        for _ in range(count):
            cards.append(make_card(n, rarity, set_id))
            n += 1
    return cards


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        cards={"SV1": make_pool()},
        sets=[CardSet("sv1", "Scarlet & Violet", "Scarlet & Violet", "2023/03/31")],
    )


@pytest.fixture
def state(tmp_path, provider) -> AppState:
    return AppState(data_dir=str(tmp_path / "data"), cooldown_ms=3_600_000, provider=provider)


@pytest.fixture
def unavailable() -> ProviderUnavailable:
    return ProviderUnavailable("timed out")
