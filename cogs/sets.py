# cogs/sets.py
import os, asyncio, logging, discord
from typing import List, Optional
from discord.ext import commands
from discord import app_commands

from core.constants import AUTOCOMPLETE_LIMIT, CATALOG_REFRESH_HOURS, SETS_LIST_LIMIT
from core.state import AppState

GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)
GUILD = discord.Object(id=GUILD_ID) if GUILD_ID else None

logger = logging.getLogger(__name__)

async def ac_set_choices(interaction: discord.Interaction, current: str) -> List[app_commands.Choice[str]]:
    """Autocomplete on set id or name (first 25 matches, newest sets first)."""
    catalog = interaction.client.state.catalog
    cur = (current or "").strip().casefold()
    out: List[app_commands.Choice[str]] = []
    for s in catalog.sets:
        if cur and cur not in s.id.casefold() and cur not in s.name.casefold():
            continue
        out.append(app_commands.Choice(name=f"{s.id}: {s.name}"[:100], value=s.id))
        if len(out) >= AUTOCOMPLETE_LIMIT:
            break
    return out

class Sets(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.state: AppState = bot.state
        self._task: Optional[asyncio.Task] = None

    async def cog_load(self):
        self._task = asyncio.create_task(self._refresh_loop(), name="set-catalog-refresh")

    async def cog_unload(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _refresh_loop(self):
        max_age = CATALOG_REFRESH_HOURS * 3600
        while True:
            try:
                if self.state.catalog.is_stale(max_age):
                    await asyncio.to_thread(self.state.catalog.refresh)
                # retry sooner while the catalog has never loaded
                await asyncio.sleep(max_age if self.state.catalog.as_of else 60)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[sets] refresh loop error")
                await asyncio.sleep(60)

    @app_commands.command(name="sets", description="List the latest sets or filter them")
    @app_commands.guilds(GUILD)
    @app_commands.describe(filter="Filter by id, name or series")
    async def sets(self, interaction: discord.Interaction, filter: Optional[str] = None):
        found = self.state.catalog.search(filter)
        latest = found[:SETS_LIST_LIMIT]
        desc = "\n".join(f"`{s.id}`: {s.name}" for s in latest) or "No sets found."
        if len(found) > SETS_LIST_LIMIT:
            desc += f"\n…+{len(found) - SETS_LIST_LIMIT} more"
        embed = discord.Embed(
            title=f"Results for `{filter}`" if filter else f"{SETS_LIST_LIMIT} latest sets",
            description=desc,
        )
        embed.set_footer(text="/sets filter:SV to show SV sets only")
        await interaction.response.send_message(embed=embed)

async def setup(bot: commands.Bot):
    await bot.add_cog(Sets(bot))
