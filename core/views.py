from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import quote_plus

import discord

from core.catalog import Card
from core.constants import CARDMARKET_SEARCH_URL
from core.packs import PackOpening

FOOTER_TEXT = "Pokémon TCG Bot"
WATCH_PREFIX = "watch"

def pack_embed(opening: PackOpening) -> discord.Embed:
    """One field per pulled card; the last (rare) card's art as the image."""
    embed = discord.Embed(title=f"🎁 Booster — {opening.set_id}", color=0x2b6cb0)
    for card in opening.cards:
        embed.add_field(
            name=card.name or "Unknown",
            value=f"{card.rarity or '—'} • #{card.number}",
            inline=True,
        )
    hit = opening.hit
    if hit and hit.image_url:
        embed.set_image(url=hit.image_url)
    embed.set_footer(text=FOOTER_TEXT)
    return embed

def _eur(value) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return "N/A"
    return f"{value} €"

def price_embed(card: Card) -> discord.Embed:
    title = f"{card.name} — {card.set_name}" if card.set_name else card.name
    embed = discord.Embed(title=title, color=0x00ae86)
    if card.image_url:
        embed.set_image(url=card.image_url)
    p = card.prices
    embed.add_field(name="Low price", value=_eur(p.get("lowPrice")), inline=True)
    embed.add_field(name="Average price", value=_eur(p.get("averageSellPrice")), inline=True)
    embed.add_field(name="Trend", value=_eur(p.get("trendPrice")), inline=True)
    embed.set_footer(text=FOOTER_TEXT)
    return embed

def watch_custom_id(set_id: str, number: str) -> str:
    return f"{WATCH_PREFIX}:{set_id}:{number}"

def parse_watch_custom_id(custom_id: Optional[str]) -> Optional[Tuple[str, str]]:
    parts = (custom_id or "").split(":")
    if len(parts) != 3 or parts[0] != WATCH_PREFIX or not parts[1] or not parts[2]:
        return None
    return parts[1], parts[2]

class WatchToggleButton(discord.ui.Button):
    # Clicks are routed by custom_id through the Prices cog listener so the
    # buttons keep working after a restart.
    def __init__(self, set_id: str, number: str, watching: bool):
        super().__init__(
            label="🔕 Stop watching" if watching else "🔔 Watch",
            style=discord.ButtonStyle.danger if watching else discord.ButtonStyle.primary,
            custom_id=watch_custom_id(set_id, number),
        )

class PriceView(discord.ui.View):
    # Clicks after the timeout still reach the Prices cog listener.
    def __init__(
        self,
        set_id: str,
        number: str,
        watching: bool,
        card_name: Optional[str] = None,
        *,
        timeout: float = 120,
    ):
        super().__init__(timeout=timeout)
        self.add_item(WatchToggleButton(set_id, number, watching))
        if card_name:
            self.add_item(discord.ui.Button(
                label="🔗 Cardmarket",
                style=discord.ButtonStyle.link,
                url=CARDMARKET_SEARCH_URL.format(query=quote_plus(card_name)),
            ))
