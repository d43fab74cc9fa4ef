# core/cooldown.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class CooldownCheck:
    allowed: bool
    remaining_ms: int = 0


def check_cooldown(last_use_ms: Optional[int], now_ms: int, window_ms: int) -> CooldownCheck:
    """Allowed unless the last use is less than ``window_ms`` ago.

    Pure function: recording the new use is up to the caller.
    """
    if last_use_ms is None:
        return CooldownCheck(True)
    elapsed = int(now_ms) - int(last_use_ms)
    if elapsed < window_ms:
        return CooldownCheck(False, int(window_ms) - elapsed)
    return CooldownCheck(True)


def check_user_cooldown(cooldowns: Dict[str, int], user_id, now_ms: int, window_ms: int) -> CooldownCheck:
    return check_cooldown(cooldowns.get(str(user_id)), now_ms, window_ms)


def record_use(cooldowns: Dict[str, int], user_id, now_ms: int) -> None:
    cooldowns[str(user_id)] = int(now_ms)


def format_remaining(remaining_ms: int) -> str:
    total_s = max(0, int(remaining_ms)) // 1000
    minutes, seconds = divmod(total_s, 60)
    return f"{minutes}m{seconds:02d}s"
