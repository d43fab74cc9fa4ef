import logging
import os

import discord
from discord import app_commands
from discord.ext import commands

from cogs.sets import ac_set_choices
from core.collection import badge_label
from core.cooldown import format_remaining
from core.errors import NotFound, ProviderUnavailable, RateLimited
from core.packs import open_pack
from core.views import pack_embed

# Set guild ID for development
GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)
GUILD = discord.Object(id=GUILD_ID) if GUILD_ID else None

logger = logging.getLogger(__name__)

class Packs(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.state = bot.state

    @app_commands.command(name="open", description="Open a Pokémon booster pack")
    @app_commands.guilds(GUILD)
    @app_commands.describe(set="Set ID")
    @app_commands.autocomplete(set=ac_set_choices)
    async def open(self, interaction: discord.Interaction, set: str):
        await interaction.response.defer(thinking=True)
        try:
            opening = await open_pack(self.state, interaction.user.id, set)
        except RateLimited as e:
            return await interaction.edit_original_response(content=f"⏳ Wait {format_remaining(e.remaining_ms)}")
        except NotFound:
            return await interaction.edit_original_response(content=f"❌ Set {set.strip().upper()} not found.")
        except ProviderUnavailable as e:
            logger.warning("[packs] provider error opening %s: %s", set, e)
            return await interaction.edit_original_response(content="❌ The card database is unreachable, try again later.")

        await interaction.edit_original_response(embed=pack_embed(opening))
        for badge in opening.new_badges:
            await interaction.followup.send(f"🎉 Badge unlocked: {badge_label(badge)}!", ephemeral=True)

async def setup(bot: commands.Bot):
    await bot.add_cog(Packs(bot))
