"""Register the bot's slash commands with Discord.

Guild-scoped when GUILD_ID is set (appears immediately), otherwise global
(may take up to an hour to appear).

Env vars:
- DISCORD_TOKEN
- DISCORD_CLIENT_ID
- GUILD_ID (optional)

Run:
  python scripts/register_commands.py
"""

from __future__ import annotations

from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure `import src.*` works when running as `python scripts/...` from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.allowlist_bot.config.settings import build_tier_policy
from src.allowlist_bot.integrations.discord_commands import (
    DiscordCommandsClient,
    command_definitions,
)


def main() -> int:
    load_dotenv(dotenv_path=".env", override=False)

    try:
        client = DiscordCommandsClient.from_env()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    commands = command_definitions(build_tier_policy())
    try:
        scope = client.register(commands)
    except RuntimeError as e:
        print(f"❌ Failed to register commands: {e}", file=sys.stderr)
        return 1

    if scope == "guild":
        print("✅ Registered guild commands:")
    else:
        print("✅ Registered global commands (may take up to 1 hour to appear):")
    for cmd in commands:
        print(f"   - /{cmd['name']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
