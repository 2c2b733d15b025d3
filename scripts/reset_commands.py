"""Delete all registered slash commands (guild + global), then register again.

Useful when Discord clients keep showing stale commands.

Run:
  python scripts/reset_commands.py [--wait-seconds 2]
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import time

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
    parser = argparse.ArgumentParser()
    parser.add_argument("--wait-seconds", type=float, default=2.0)
    args = parser.parse_args()

    load_dotenv(dotenv_path=".env", override=False)

    try:
        client = DiscordCommandsClient.from_env()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    commands = command_definitions(build_tier_policy())
    try:
        print("🗑️  Deleting all existing commands...\n")
        for scope in client.clear():
            print(f"✅ {scope.capitalize()} commands deleted")

        print(f"\n⏳ Waiting {args.wait_seconds:g} seconds...\n")
        time.sleep(args.wait_seconds)

        print("📝 Re-registering commands...\n")
        scope = client.register(commands)
    except RuntimeError as e:
        print(f"❌ Error resetting commands: {e}", file=sys.stderr)
        return 1

    print(f"✅ {scope.capitalize()} commands registered:")
    for cmd in commands:
        print(f"   - /{cmd['name']}")
    print("\n🎉 Commands reset complete!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
