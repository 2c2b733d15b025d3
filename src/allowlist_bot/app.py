"""Process entry point: configuration, logging, store, Discord client."""

from __future__ import annotations

import logging
import sys

from src.allowlist_bot.bot.discord_bot import build_bot
from src.allowlist_bot.config.settings import BotSettings
from src.allowlist_bot.integrations.google_sheets_store import GoogleSheetsSubmissionStore
from src.allowlist_bot.use_cases.submission_flow import SubmissionFlow

THIRD_PARTY_LOGGERS = ("discord", "googleapiclient", "google.auth")


def configure_logging(settings: BotSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    third_party_level = getattr(logging, settings.third_party_log_level.upper(), logging.WARNING)
    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(third_party_level)


def create_flow(settings: BotSettings) -> tuple[SubmissionFlow, GoogleSheetsSubmissionStore]:
    store = GoogleSheetsSubmissionStore.from_settings(settings)
    flow = SubmissionFlow(
        policy=settings.policy,
        store=store,
        stats_admin_ids=settings.stats_admin_ids,
    )
    return flow, store


def main() -> int:
    try:
        settings = BotSettings.from_env()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger(__name__).error("Configuration error: %s", e)
        return 1

    configure_logging(settings)
    logger = logging.getLogger(__name__)
    if not settings.stats_admin_ids:
        logger.warning("STATS_ADMIN_IDS is empty; /stats will be denied for everyone")

    flow, store = create_flow(settings)
    bot = build_bot(settings, flow, store)
    logger.info("🚀 Starting allowlist bot (guild scope: %s)", settings.guild_id or "global")
    # log_handler=None: keep the handlers configured above.
    bot.run(settings.discord_token, log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
