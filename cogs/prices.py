# cogs/prices.py
import os, asyncio, logging, discord
from typing import Optional
from discord.ext import commands
from discord import app_commands

from cogs.sets import ac_set_choices
from core.errors import ProviderUnavailable
from core.price_watch import PriceWatcher
from core.state import AppState
from core.views import PriceView, parse_watch_custom_id, price_embed
from core.watches import WatchToggle, card_key, is_watching, toggle_watch, watched_entries

GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)
GUILD = discord.Object(id=GUILD_ID) if GUILD_ID else None

logger = logging.getLogger(__name__)

class Prices(commands.Cog):
    """/price lookups, watch toggles and the hourly price-change DMs."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.state: AppState = bot.state
        self.watcher = PriceWatcher(self.state, self._notify)

    async def cog_load(self):
        self.watcher.start()

    async def cog_unload(self):
        await self.watcher.stop()

    async def _notify(self, user_id: str, message: str):
        uid = int(user_id)
        user = self.bot.get_user(uid) or await self.bot.fetch_user(uid)
        await user.send(message)

    @app_commands.command(name="price", description="Show a card's market prices")
    @app_commands.guilds(GUILD)
    @app_commands.describe(set="Set ID", number="Card number")
    @app_commands.autocomplete(set=ac_set_choices)
    async def price(self, interaction: discord.Interaction, set: str, number: str):
        set_id = set.strip().upper()
        number = number.strip()
        await interaction.response.defer(thinking=True)
        try:
            card = await asyncio.to_thread(self.state.provider.find_card, set_id, number)
        except ProviderUnavailable as e:
            logger.warning("[prices] lookup %s/%s failed: %s", set_id, number, e)
            return await interaction.edit_original_response(content="❌ The card database is unreachable, try again later.")
        if card is None:
            return await interaction.edit_original_response(content=f"❌ {set_id}/{number} not found.")

        watching = is_watching(self.state, interaction.user.id, card_key(set_id, number))
        view = PriceView(set_id, number, watching, card_name=card.name)
        await interaction.edit_original_response(embed=price_embed(card), view=view)

    @app_commands.command(name="watched", description="List the cards you are watching")
    @app_commands.guilds(GUILD)
    async def watched(self, interaction: discord.Interaction):
        entries = watched_entries(self.state, interaction.user.id)
        if not entries:
            return await interaction.response.send_message("ℹ️ You are not watching any card.", ephemeral=True)
        embed = discord.Embed(
            title="🔔 Watched cards",
            description="\n".join(f"• {w['key']} ({w['lastPrice']} €)" for w in entries),
            color=0x00ae86,
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction):
        if interaction.type != discord.InteractionType.component:
            return
        parsed = parse_watch_custom_id((interaction.data or {}).get("custom_id"))
        if parsed is None:
            return
        set_id, number = parsed

        # the price lookup can be slow; ack the click first
        await interaction.response.defer()
        try:
            result = await toggle_watch(self.state, interaction.user.id, set_id, number)
        except Exception:
            logger.exception("[prices] watch toggle for %s/%s failed", set_id, number)
            await interaction.followup.send("❌ Could not update this watch, try again later.", ephemeral=True)
            return
        watching = result is WatchToggle.WATCHING

        card_name: Optional[str] = None
        if interaction.message and interaction.message.embeds:
            title = interaction.message.embeds[0].title or ""
            card_name = title.split(" — ")[0] or None
        view = PriceView(set_id, number, watching, card_name=card_name)
        try:
            await interaction.edit_original_response(view=view)
        except discord.HTTPException:
            logger.warning("[prices] could not refresh watch button", exc_info=True)

async def setup(bot: commands.Bot):
    await bot.add_cog(Prices(bot))
