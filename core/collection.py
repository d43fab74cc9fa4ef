# core/collection.py
from typing import Dict, List, Tuple

from core.constants import BADGE_LABELS, LEADERBOARD_SIZE

def set_totals(collections: dict, user_id) -> Dict[str, int]:
    """Cards owned per set, in the order the sets were first opened."""
    sets = collections.get(str(user_id)) or {}
    return {sid: sum(cards.values()) for sid, cards in sets.items()}

def total_cards(collections: dict, user_id) -> int:
    return sum(set_totals(collections, user_id).values())

def leaderboard(collections: dict, limit: int = LEADERBOARD_SIZE) -> List[Tuple[str, int]]:
    rows = [(uid, total_cards(collections, uid)) for uid in collections]
    rows.sort(key=lambda r: r[1], reverse=True)
    return rows[:limit]

def user_stats(stats: dict, user_id) -> Dict[str, int]:
    row = stats.get(str(user_id)) or {}
    return {"openers": int(row.get("openers", 0)), "trades": int(row.get("trades", 0))}

def user_badges(badges: dict, user_id) -> List[str]:
    return list(badges.get(str(user_id)) or [])

def badge_label(badge_id: str) -> str:
    return BADGE_LABELS.get(badge_id, badge_id)
