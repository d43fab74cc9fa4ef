from dataclasses import dataclass, field
from typing import Any

from core.catalog import PokemonTCGClient, SetCatalog
from core.constants import COOLDOWN_MS
from core.store import StateStore

@dataclass
class AppState:
    data_dir: str
    cooldown_ms: int = COOLDOWN_MS
    provider: Any = field(default_factory=PokemonTCGClient)  # list_cards / find_card / list_sets
    store: StateStore = field(init=False)
    catalog: SetCatalog = field(init=False)

    def __post_init__(self):
        self.store = StateStore(self.data_dir)
        self.catalog = SetCatalog(self.provider)
