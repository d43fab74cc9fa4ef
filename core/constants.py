import os

def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "") or default)
    except ValueError:
        return float(default)

DATA_DIR = os.getenv("DATA_DIR", "data")

# Pack opening cooldown
COOLDOWN_HOURS = _env_float("COOLDOWN_HOURS", 1)
COOLDOWN_MS = int(COOLDOWN_HOURS * 60 * 60 * 1000)

# Price watch loop
WATCH_INTERVAL_MINUTES = _env_float("WATCH_INTERVAL_MINUTES", 60)
WATCH_INTERVAL_SECONDS = max(1.0, WATCH_INTERVAL_MINUTES * 60)
WATCH_PRUNE_AFTER_MISSES = int(_env_float("WATCH_PRUNE_AFTER_MISSES", 24))

# Pokémon TCG API
POKEMONTCG_API_URL = os.getenv("POKEMONTCG_API_URL", "https://api.pokemontcg.io/v2")
POKEMONTCG_API_KEY = os.getenv("POKEMONTCG_API_KEY", "")
PROVIDER_TIMEOUT_SECONDS = _env_float("PROVIDER_TIMEOUT_SECONDS", 20)
PREFERRED_LANGUAGE = os.getenv("PREFERRED_LANGUAGE", "fr")
CARDS_PAGE_SIZE = 250
SETS_PAGE_SIZE = 500
CATALOG_REFRESH_HOURS = _env_float("CATALOG_REFRESH_HOURS", 24)

# Booster layout: (tier, number of cards)
PACK_LAYOUT = [
    ("common", 6),
    ("uncommon", 3),
    ("rare", 1),
]
PACK_SIZE = sum(n for _tier, n in PACK_LAYOUT)

FIRST_PACK_BADGE = "first-pack"
BADGE_LABELS = {
    FIRST_PACK_BADGE: "🥇 First Booster",
}

CARDMARKET_SEARCH_URL = "https://www.cardmarket.com/en/Pokemon/Products/Singles?searchString={query}"
LEADERBOARD_SIZE = 5
SETS_LIST_LIMIT = 25
AUTOCOMPLETE_LIMIT = 25
