"""List the slash commands currently registered for the bot (guild + global).

Run:
  python scripts/check_commands.py
"""

from __future__ import annotations

from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure `import src.*` works when running as `python scripts/...` from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.allowlist_bot.integrations.discord_commands import DiscordCommandsClient


def _print_commands(title: str, commands: list[dict]) -> None:
    print(f"{title} ({len(commands)}):")
    for cmd in commands:
        print(f"  - /{cmd.get('name')} (ID: {cmd.get('id')})")


def main() -> int:
    load_dotenv(dotenv_path=".env", override=False)

    try:
        client = DiscordCommandsClient.from_env()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print("🔍 Checking registered commands...\n")
    try:
        if client.guild_id:
            _print_commands("📍 Guild Commands", client.list_guild_commands())
            print()
        _print_commands("🌍 Global Commands", client.list_global_commands())
    except RuntimeError as e:
        print(f"❌ Error checking commands: {e}", file=sys.stderr)
        return 1

    print("\n✅ Command check complete!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
