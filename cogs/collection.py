# cogs/collection.py
import os, discord
from discord.ext import commands
from discord import app_commands

from core.collection import (
    badge_label,
    leaderboard,
    set_totals,
    total_cards,
    user_badges,
    user_stats,
)
from core.state import AppState

GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)
GUILD = discord.Object(id=GUILD_ID) if GUILD_ID else None

class Collection(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.state: AppState = bot.state

    @app_commands.command(name="inventory", description="Show how many cards you own per set")
    @app_commands.guilds(GUILD)
    async def inventory(self, interaction: discord.Interaction):
        totals = set_totals(self.state.store.load("collections"), interaction.user.id)
        if not totals:
            return await interaction.response.send_message("❌ No collection yet.", ephemeral=True)
        embed = discord.Embed(title="📋 Full inventory")
        for set_id, total in totals.items():
            embed.add_field(name=set_id, value=f"x{total}", inline=True)
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="badges", description="Show the badges you earned")
    @app_commands.guilds(GUILD)
    async def badges(self, interaction: discord.Interaction):
        owned = user_badges(self.state.store.load("badges"), interaction.user.id)
        if not owned:
            return await interaction.response.send_message("🎖️ No badges yet.", ephemeral=True)
        embed = discord.Embed(title="🎖️ Badges", description="\n".join(badge_label(b) for b in owned))
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="top", description="Global top collectors")
    @app_commands.guilds(GUILD)
    async def top(self, interaction: discord.Interaction):
        rows = leaderboard(self.state.store.load("collections"))
        desc = "\n".join(f"**{i}.** <@{uid}> — {total} cards" for i, (uid, total) in enumerate(rows, start=1))
        embed = discord.Embed(title="🏆 Global top", description=desc or "Nobody yet", color=0xFFD700)
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="stats", description="Show your pack openings and trades")
    @app_commands.guilds(GUILD)
    async def stats(self, interaction: discord.Interaction):
        s = user_stats(self.state.store.load("stats"), interaction.user.id)
        await interaction.response.send_message(
            f"📊 Boosters: {s['openers']}\n🔁 Trades: {s['trades']}",
            ephemeral=True,
        )

    @app_commands.command(name="profile", description="Your profile: total cards and badges")
    @app_commands.guilds(GUILD)
    async def profile(self, interaction: discord.Interaction):
        user = interaction.user
        total = total_cards(self.state.store.load("collections"), user.id)
        owned = user_badges(self.state.store.load("badges"), user.id)
        embed = discord.Embed(title=f"🧑 {user.display_name}")
        embed.add_field(name="📦 Total cards", value=str(total), inline=True)
        embed.add_field(
            name="🎖️ Badges",
            value=", ".join(badge_label(b) for b in owned) if owned else "None",
            inline=True,
        )
        embed.set_thumbnail(url=user.display_avatar.url)
        await interaction.response.send_message(embed=embed)

async def setup(bot: commands.Bot):
    await bot.add_cog(Collection(bot))
