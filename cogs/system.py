import asyncio, discord, logging, os
from datetime import datetime, timezone
from discord.ext import commands
from discord import app_commands

from core.errors import BotError

# Set guild ID for development
GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)
GUILD = discord.Object(id=GUILD_ID) if GUILD_ID else None

logger = logging.getLogger(__name__)

class System(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._prev_error_handler = None

    async def cog_load(self):
        self._prev_error_handler = self.bot.tree.on_error
        self.bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self):
        if self._prev_error_handler is not None:
            self.bot.tree.on_error = self._prev_error_handler

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        original = getattr(error, "original", error)
        if isinstance(error, app_commands.MissingPermissions):
            msg = "❌ You don't have permission to use this command."
        elif isinstance(original, BotError):
            msg = f"❌ {original}"
        else:
            name = interaction.command.name if interaction.command else "?"
            logger.error("Error in /%s", name, exc_info=original)
            msg = "❌ Something went wrong, try again."
        try:
            if interaction.response.is_done():
                await interaction.followup.send(msg, ephemeral=True)
            else:
                await interaction.response.send_message(msg, ephemeral=True)
        except discord.HTTPException:
            logger.warning("Could not report command error", exc_info=True)

    @app_commands.command(name="ping", description="Bot up?")
    @app_commands.guilds(GUILD)
    async def ping(self, interaction: discord.Interaction):
        await interaction.response.send_message("Pong!", ephemeral=True)

    @app_commands.command(name="reload_sets", description="Reload the set list from the Pokémon TCG API")
    @app_commands.guilds(GUILD)
    @app_commands.default_permissions(administrator=True)
    @app_commands.checks.has_permissions(administrator=True)
    async def reload_sets(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        catalog = self.bot.state.catalog
        ok = await asyncio.to_thread(catalog.refresh)
        if ok:
            stamp = datetime.fromtimestamp(catalog.as_of, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
            await interaction.followup.send(f"Reloaded {len(catalog.sets)} sets (as of {stamp}).", ephemeral=True)
        else:
            await interaction.followup.send("Reload failed; keeping the previous set list.", ephemeral=True)

async def setup(bot: commands.Bot):
    await bot.add_cog(System(bot))
