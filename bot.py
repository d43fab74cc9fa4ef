# bot.py
import os, asyncio, logging
import discord
from discord.ext import commands
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

from core.constants import DATA_DIR
from core.state import AppState

TOKEN    = (os.getenv("DISCORD_TOKEN") or "").strip()
GUILD_ID = int(os.getenv("GUILD_ID", "0") or 0)

BASE_DIR = Path(__file__).resolve().parent

# make relative paths project-relative
DATA_PATH = DATA_DIR if os.path.isabs(DATA_DIR) else str((BASE_DIR / DATA_DIR).resolve())

logger = logging.getLogger("bot")

intents = discord.Intents.default()
bot = commands.Bot(command_prefix="!", intents=intents)
tree = bot.tree

bot.state = AppState(data_dir=DATA_PATH)

COGS = ["cogs.system", "cogs.sets", "cogs.packs", "cogs.prices", "cogs.collection"]

async def setup_hook():
    # 1) Set catalog before the cogs so autocomplete has data right away
    await asyncio.to_thread(bot.state.catalog.refresh)

    # 2) Load cogs BEFORE syncing
    for ext in COGS:
        try:
            await bot.load_extension(ext)
            logger.info("[cogs] loaded %s", ext)
        except Exception:
            logger.exception("[cogs] FAILED %s", ext)

    # 3) Sync to the dev guild for instant availability, otherwise globally
    if GUILD_ID:
        await tree.sync(guild=discord.Object(id=GUILD_ID))
        logger.info("Slash commands synced to guild %s", GUILD_ID)
    else:
        await tree.sync()
        logger.info("Slash commands globally synced (may take a while)")

bot.setup_hook = setup_hook

@bot.event
async def on_ready():
    logger.info("In guilds: %s", [g.id for g in bot.guilds])
    logger.info("Logged in as %s (ID: %s)", bot.user, bot.user.id)

if __name__ == "__main__":
    if not TOKEN:
        raise SystemExit("DISCORD_TOKEN missing in .env")
    bot.run(TOKEN, root_logger=True)
