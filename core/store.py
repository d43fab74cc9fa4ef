"""JSON-file persistence for the five state categories.

One file per category under the data directory. Loads self-heal: a missing,
blank or unparseable file is replaced by the default mapping instead of
failing the caller. Saves are best effort: write errors are logged and the
caller's in-memory change stands.
"""
from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from core.schema import coerce_category

logger = logging.getLogger(__name__)

CATEGORIES = ("collections", "cooldowns", "watches", "badges", "stats")


class StateStore:
    def __init__(self, data_dir: str | os.PathLike):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: Dict[str, asyncio.Lock] = {c: asyncio.Lock() for c in CATEGORIES}

    def path(self, category: str) -> Path:
        self._check(category)
        return self.data_dir / f"{category}.json"

    def lock(self, category: str) -> asyncio.Lock:
        """Mutual exclusion for a category's read-modify-persist sequence."""
        self._check(category)
        return self._locks[category]

    def load(self, category: str, default: dict | None = None) -> Dict[str, Any]:
        path = self.path(category)
        fallback = {} if default is None else default
        try:
            raw = path.read_text(encoding="utf-8").strip() if path.exists() else ""
        except OSError:
            logger.exception("Could not read %s; using defaults", path)
            return copy.deepcopy(fallback)

        if not raw:
            self.save(category, fallback)
            return copy.deepcopy(fallback)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Unparseable %s (%s); resetting category", path, e)
            self._quarantine(path)
            self.save(category, fallback)
            return copy.deepcopy(fallback)

        clean, changed = coerce_category(category, data)
        if changed:
            logger.warning("Dropped or coerced malformed entries in %s", path)
        return clean

    def save(self, category: str, data: Dict[str, Any]) -> bool:
        path = self.path(category)
        tmp = path.with_suffix(path.suffix + ".part")
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
            tmp.replace(path)
        except (OSError, TypeError, ValueError):
            logger.exception("Could not write %s", path)
            return False
        return True

    def _quarantine(self, path: Path) -> None:
        target = path.with_suffix(path.suffix + ".corrupt")
        try:
            path.replace(target)
            logger.warning("Moved unreadable %s to %s", path.name, target.name)
        except OSError:
            logger.exception("Could not move aside %s", path)

    @staticmethod
    def _check(category: str) -> None:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown state category '{category}'.")


__all__ = ["CATEGORIES", "StateStore"]
