"""Validation of persisted state categories.

Each ``coerce_*`` function takes whatever was parsed out of a category file
and returns ``(clean, changed)``: a mapping in the expected shape plus a flag
telling whether anything had to be dropped or rewritten. Nothing here raises
on bad data; malformed entries are discarded.
"""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, Tuple


def _coerce_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) and raw.is_integer() else None
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


def _coerce_price(raw: Any) -> float | int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        try:
            val = float(raw.strip())
        except ValueError:
            return None
        return val if math.isfinite(val) else None
    return None


def _user_key(raw: Any) -> str:
    return str(raw).strip()


def coerce_collections(data: Any) -> Tuple[Dict[str, dict], bool]:
    out: Dict[str, dict] = {}
    changed = False
    for uid, sets in data.items():
        if not isinstance(sets, dict):
            changed = True
            continue
        user_sets: Dict[str, dict] = {}
        for set_id, cards in sets.items():
            if not isinstance(cards, dict):
                changed = True
                continue
            counts: Dict[str, int] = {}
            for key, raw_count in cards.items():
                count = _coerce_int(raw_count)
                if count is None or count < 1 or not str(key).strip():
                    changed = True
                    continue
                if count != raw_count:
                    changed = True
                counts[str(key)] = count
            if counts:
                user_sets[str(set_id)] = counts
            else:
                changed = True
        if user_sets:
            out[_user_key(uid)] = user_sets
        else:
            changed = True
    return out, changed


def coerce_cooldowns(data: Any) -> Tuple[Dict[str, int], bool]:
    out: Dict[str, int] = {}
    changed = False
    for uid, raw_ts in data.items():
        ts = _coerce_int(raw_ts)
        if ts is None and isinstance(raw_ts, float) and math.isfinite(raw_ts):
            ts = int(raw_ts)
        if ts is None or ts < 0:
            changed = True
            continue
        if ts != raw_ts:
            changed = True
        out[_user_key(uid)] = ts
    return out, changed


def coerce_watches(data: Any) -> Tuple[Dict[str, list], bool]:
    out: Dict[str, list] = {}
    changed = False
    for uid, entries in data.items():
        if not isinstance(entries, list):
            changed = True
            continue
        seen: set[str] = set()
        clean: list[dict] = []
        for entry in entries:
            if not isinstance(entry, dict):
                changed = True
                continue
            key = entry.get("key")
            if not isinstance(key, str) or key.count("/") != 1 or key in seen:
                changed = True
                continue
            set_id, number = key.split("/")
            if not set_id.strip() or not number.strip():
                changed = True
                continue
            price = _coerce_price(entry.get("lastPrice", 0))
            if price is None:
                price = 0
                changed = True
            elif price != entry.get("lastPrice") or set(entry) != {"key", "lastPrice"}:
                changed = True
            seen.add(key)
            clean.append({"key": key, "lastPrice": price})
        out[_user_key(uid)] = clean
    return out, changed


def coerce_badges(data: Any) -> Tuple[Dict[str, list], bool]:
    out: Dict[str, list] = {}
    changed = False
    for uid, badges in data.items():
        if not isinstance(badges, list):
            changed = True
            continue
        clean: list[str] = []
        for badge in badges:
            if not isinstance(badge, str) or not badge.strip() or badge in clean:
                changed = True
                continue
            clean.append(badge)
        out[_user_key(uid)] = clean
    return out, changed


def coerce_stats(data: Any) -> Tuple[Dict[str, dict], bool]:
    out: Dict[str, dict] = {}
    changed = False
    for uid, row in data.items():
        if not isinstance(row, dict):
            changed = True
            continue
        clean = {}
        for field in ("openers", "trades"):
            val = _coerce_int(row.get(field, 0))
            if val is None or val < 0:
                val = 0
                changed = True
            elif val != row.get(field):
                changed = True
            clean[field] = val
        out[_user_key(uid)] = clean
    return out, changed


COERCERS: Dict[str, Callable[[Any], Tuple[dict, bool]]] = {
    "collections": coerce_collections,
    "cooldowns": coerce_cooldowns,
    "watches": coerce_watches,
    "badges": coerce_badges,
    "stats": coerce_stats,
}


def coerce_category(category: str, data: Any) -> Tuple[dict, bool]:
    """Validate one category's parsed content; non-objects become ``{}``."""
    if not isinstance(data, dict):
        return {}, True
    return COERCERS[category](data)


__all__ = ["COERCERS", "coerce_category"]
