"""Discord front end: tier entry posts, wallet modal, slash commands."""

from __future__ import annotations

import logging
from typing import Iterable

import discord
from discord import app_commands
from discord.ext import commands

from src.allowlist_bot.bot.responses import (
    GENERIC_ERROR,
    NO_SUBMISSIONS,
    ROLE_LOOKUP_FAILED,
    STATS_DENIED,
    STATS_SENT,
    commit_message,
    entry_post_title,
    rejection_message,
    statistics_message,
    status_fields,
    status_title,
)
from src.allowlist_bot.integrations.discord_roles import resolve_role_label, resolve_role_set
from src.allowlist_bot.integrations.google_sheets_store import SubmissionRecord
from src.allowlist_bot.use_cases.submission_flow import (
    GateStatus,
    LabelResolver,
    SubmissionFlow,
    Submitter,
)
from src.allowlist_bot.use_cases.tier_policy import Tier, TierConfig

logger = logging.getLogger(__name__)

SUBMIT_PREFIX = "submit_wallet_"
STATUS_PREFIX = "check_status_"
MODAL_PREFIX = "wallet_modal_"
WALLET_FIELD_ID = "wallet_address"

_DEFERRED_TYPES = {
    discord.InteractionResponseType.deferred_channel_message,
    discord.InteractionResponseType.deferred_message_update,
}


async def report_interaction_failure(interaction: discord.Interaction, error: BaseException) -> None:
    """Log the failure and give the user exactly one generic error message."""

    logger.error("Interaction error (user %s): %s", getattr(interaction.user, "id", "?"), error, exc_info=error)
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(GENERIC_ERROR, ephemeral=True)
        elif interaction.response.type in _DEFERRED_TYPES:
            await interaction.edit_original_response(content=GENERIC_ERROR, embeds=[], view=None)
        else:
            await interaction.followup.send(GENERIC_ERROR, ephemeral=True)
    except discord.HTTPException as e:
        logger.warning("Could not report interaction failure: %s", e)


async def current_submitter(interaction: discord.Interaction) -> Submitter:
    roles = await resolve_role_set(interaction)
    return Submitter(
        user_id=str(interaction.user.id),
        display_name=interaction.user.name,
        roles=roles,
    )


def label_resolver(interaction: discord.Interaction) -> LabelResolver:
    async def _resolve(role_id: str | None) -> str | None:
        return await resolve_role_label(interaction.guild, role_id)

    return _resolve


def status_embeds(records: list[SubmissionRecord]) -> list[discord.Embed]:
    title = status_title(records)
    embeds = []
    for i, record in enumerate(records):
        embed = discord.Embed(
            title=title if i == 0 else None,
            color=0x2ECC71,
        )
        for name, value, inline in status_fields(record):
            embed.add_field(name=name, value=value, inline=inline)
        embeds.append(embed)
    return embeds


async def deliver_to_admins(
    client: discord.Client,
    admin_ids: Iterable[str],
    text: str,
) -> set[str]:
    """DM `text` to every admin; returns the ids that received it."""

    delivered: set[str] = set()
    for admin_id in sorted(admin_ids):
        try:
            user = await client.fetch_user(int(admin_id))
            await user.send(text)
        except (discord.HTTPException, ValueError) as e:
            logger.warning("Could not DM statistics to %s: %s", admin_id, e)
            continue
        delivered.add(admin_id)
    return delivered


class WalletModal(discord.ui.Modal):
    def __init__(self, *, tier: Tier, flow: SubmissionFlow) -> None:
        super().__init__(
            title=f"Submit your {tier.value} EVM Wallet",
            custom_id=f"{MODAL_PREFIX}{tier.value}",
        )
        self.tier = tier
        self.flow = flow
        self.wallet = discord.ui.TextInput(
            label="EVM wallet address (0x...)",
            custom_id=WALLET_FIELD_ID,
            style=discord.TextStyle.short,
            placeholder="0x...",
            required=True,
            max_length=100,
        )
        self.add_item(self.wallet)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        # Roles may have changed since the button click.
        submitter = await current_submitter(interaction)
        outcome = await self.flow.commit_submission(
            submitter,
            self.tier,
            self.wallet.value,
            label_resolver(interaction),
        )
        logger.info(
            "Wallet submission by %s for %s: %s",
            submitter.user_id,
            self.tier.value,
            outcome.status.value,
        )
        await interaction.edit_original_response(content=commit_message(outcome, self.flow.policy))

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        await report_interaction_failure(interaction, error)


class TierEntryView(discord.ui.View):
    """Submit Wallet / Check Status buttons under a tier entry post.

    Persistent (no timeout, stable custom ids) so old posts keep working
    after a restart.
    """

    def __init__(self, *, tier: Tier, flow: SubmissionFlow) -> None:
        super().__init__(timeout=None)
        self.tier = tier
        self.flow = flow

        submit = discord.ui.Button(
            label="Submit Wallet",
            style=discord.ButtonStyle.success,
            custom_id=f"{SUBMIT_PREFIX}{tier.value}",
        )
        submit.callback = self.on_submit_wallet
        self.add_item(submit)

        status = discord.ui.Button(
            label="Check Status",
            style=discord.ButtonStyle.primary,
            custom_id=f"{STATUS_PREFIX}{tier.value}",
        )
        status.callback = self.on_check_status
        self.add_item(status)

    async def on_submit_wallet(self, interaction: discord.Interaction) -> None:
        submitter = await current_submitter(interaction)
        outcome = await self.flow.open_submission(submitter, self.tier, label_resolver(interaction))

        if outcome.status is GateStatus.INELIGIBLE:
            await interaction.response.send_message(
                rejection_message(outcome.decision, self.flow.policy),
                ephemeral=True,
            )
            return
        if outcome.status is GateStatus.LABEL_UNRESOLVED:
            await interaction.response.send_message(ROLE_LOOKUP_FAILED, ephemeral=True)
            return

        await interaction.response.send_modal(WalletModal(tier=self.tier, flow=self.flow))

    async def on_check_status(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        records = await self.flow.submission_status(str(interaction.user.id))
        if not records:
            await interaction.edit_original_response(content=NO_SUBMISSIONS)
            return
        await interaction.edit_original_response(embeds=status_embeds(records))

    async def on_error(
        self,
        interaction: discord.Interaction,
        error: Exception,
        item: discord.ui.Item,
    ) -> None:
        await report_interaction_failure(interaction, error)


def _setup_command(config: TierConfig, flow: SubmissionFlow) -> app_commands.Command:
    async def post_entry(interaction: discord.Interaction) -> None:
        embed = discord.Embed(
            title=entry_post_title(config.tier),
            description="Click the button below to submit your wallet address.",
            color=0x2B2D31,
        )
        await interaction.response.send_message(
            embed=embed,
            view=TierEntryView(tier=config.tier, flow=flow),
            allowed_mentions=discord.AllowedMentions.none(),
        )

    return app_commands.Command(
        name=config.command_name,
        description=config.description,
        callback=post_entry,
    )


def _stats_command(flow: SubmissionFlow) -> app_commands.Command:
    async def stats(interaction: discord.Interaction) -> None:
        caller_id = str(interaction.user.id)
        if not flow.is_stats_admin(caller_id):
            logger.info("Denied stats request from %s", caller_id)
            await interaction.response.send_message(STATS_DENIED, ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        text = statistics_message(await flow.statistics_for(caller_id), flow.policy)
        delivered = await deliver_to_admins(interaction.client, flow.stats_admin_ids, text)
        if caller_id in delivered:
            await interaction.edit_original_response(content=STATS_SENT)
        else:
            await interaction.edit_original_response(content=text)

    return app_commands.Command(
        name="stats",
        description="Get wallet submission statistics (admin only)",
        callback=stats,
    )


def register_app_commands(tree: app_commands.CommandTree, flow: SubmissionFlow) -> None:
    for config in flow.policy.ordered:
        tree.add_command(_setup_command(config, flow))
    tree.add_command(_stats_command(flow))

    @tree.error
    async def _on_app_command_error(
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        await report_interaction_failure(interaction, getattr(error, "original", error))


class AllowlistBot(commands.Bot):
    def __init__(
        self,
        *,
        flow: SubmissionFlow,
        store,
        guild_id: str | None = None,
        application_id: int | None = None,
        intents: discord.Intents | None = None,
    ) -> None:
        if intents is None:
            intents = discord.Intents.default()
            intents.members = True
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            application_id=application_id,
        )
        self.flow = flow
        self.store = store
        self.guild_id = guild_id
        register_app_commands(self.tree, flow)

    async def setup_hook(self) -> None:
        try:
            await self.store.ensure_schema()
            logger.info("Sheets warm-up complete")
        except Exception as e:
            # Every store operation re-checks the schema; keep starting.
            logger.error("Sheets warm-up failed: %s", e, exc_info=e)

        for config in self.flow.policy.ordered:
            self.add_view(TierEntryView(tier=config.tier, flow=self.flow))

        try:
            if self.guild_id:
                guild = discord.Object(id=int(self.guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Guild commands registered (%d)", len(synced))
            else:
                synced = await self.tree.sync()
                logger.info("Global commands registered (%d); may take up to 1 hour to appear", len(synced))
        except discord.HTTPException as e:
            logger.error("Failed to register commands: %s", e)

    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.user)


def build_bot(settings, flow: SubmissionFlow, store) -> AllowlistBot:
    application_id: int | None = None
    try:
        application_id = int(settings.client_id)
    except ValueError:
        logger.warning("Invalid DISCORD_CLIENT_ID: %s", settings.client_id)
    return AllowlistBot(
        flow=flow,
        store=store,
        guild_id=settings.guild_id,
        application_id=application_id,
    )
