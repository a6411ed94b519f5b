"""Discord gateway: the interactive ``/rpc`` surface and the platform port."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from loguru import logger

from staffbot.rpc.actions import ActionCatalog, ActionSpec
from staffbot.rpc.contracts import AuditNotice
from staffbot.rpc.interactive import FlowState
from staffbot.utils.helpers import truncate_string

if TYPE_CHECKING:
    from staffbot.config.schema import Config
    from staffbot.rpc.interactive import InteractiveFlow
    from staffbot.storage.store import ListingStore
    from staffbot.tasks.role_sync import RoleSyncTask

MAX_LABEL_CHARS = 45


async def _send(interaction: discord.Interaction, text: str, *, ephemeral: bool = False) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(text, ephemeral=ephemeral)
    else:
        await interaction.response.send_message(text, ephemeral=ephemeral)


class DiscordPlatform:
    """Platform side effects: mod-log notices and kicks from the main server."""

    def __init__(self, client: discord.Client, config: Config) -> None:
        self._client = client
        self._config = config

    async def send_audit(self, notice: AuditNotice) -> None:
        channel = self._client.get_channel(self._config.channels.mod_logs)
        if channel is None or not isinstance(channel, discord.abc.Messageable):
            logger.warning("mod log channel {} unavailable", self._config.channels.mod_logs)
            return
        embed = discord.Embed(
            title=notice.method,
            description=truncate_string(notice.summary, 4096),
            timestamp=notice.timestamp,
        )
        embed.add_field(name="User", value=f"<@{notice.user_id}>")
        if notice.target:
            embed.add_field(name="Target", value=notice.target)
        if notice.reason:
            embed.add_field(name="Reason", value=truncate_string(notice.reason, 1024), inline=False)
        await channel.send(embed=embed)

    async def kick_bot(self, bot_id: str, reason: str) -> None:
        guild = self._client.get_guild(self._config.servers.main)
        if guild is None:
            logger.warning("main server {} not in cache; cannot kick {}", self._config.servers.main, bot_id)
            return
        try:
            member = guild.get_member(int(bot_id)) or await guild.fetch_member(int(bot_id))
        except discord.NotFound:
            logger.info("bot {} is not in the main server", bot_id)
            return
        await member.kick(reason=reason[:512])


class ConfirmView(discord.ui.View):
    """Next/Cancel prompt shown before the action form."""

    def __init__(self, user_id: int) -> None:
        super().__init__(timeout=None)
        self._user_id = user_id
        self.choice: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self.next_interaction: discord.Interaction | None = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self._user_id

    @discord.ui.button(label="Next", style=discord.ButtonStyle.green)
    async def next_button(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self.next_interaction = interaction
        if not self.choice.done():
            self.choice.set_result(True)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.red)
    async def cancel_button(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await interaction.response.defer()
        if not self.choice.done():
            self.choice.set_result(False)


@dataclass(slots=True)
class ModalSubmission:
    """Values of one submitted action form plus the interaction to answer."""

    values: Mapping[str, str]
    interaction: discord.Interaction

    async def reply(self, text: str) -> None:
        await _send(self.interaction, text)


class ActionModal(discord.ui.Modal):
    """Form generated from an action's field schema."""

    def __init__(self, spec: ActionSpec) -> None:
        super().__init__(title=spec.title[:MAX_LABEL_CHARS], timeout=None)
        self.submission: asyncio.Future[ModalSubmission] = asyncio.get_running_loop().create_future()
        self._inputs: dict[str, discord.ui.TextInput] = {}
        for field in spec.fields:
            text_input = discord.ui.TextInput(
                label=field.label[:MAX_LABEL_CHARS],
                style=discord.TextStyle.paragraph if field.paragraph else discord.TextStyle.short,
                placeholder=field.placeholder,
                max_length=field.max_chars,
                required=True,
            )
            self._inputs[field.key] = text_input
            self.add_item(text_input)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        values = {key: str(item.value) for key, item in self._inputs.items()}
        if not self.submission.done():
            self.submission.set_result(ModalSubmission(values=values, interaction=interaction))


class DiscordSurface:
    """Interaction surface for one ``/rpc`` slash command invocation."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self._interaction = interaction
        self._view: ConfirmView | None = None

    async def reply(self, text: str) -> None:
        await _send(self._interaction, text)

    async def ask_confirm(self, spec: ActionSpec) -> bool:
        self._view = ConfirmView(self._interaction.user.id)
        await self._interaction.response.send_message(
            f"**{spec.title}**\nPress Next to fill in the form or Cancel to abort.",
            view=self._view,
        )
        return await self._view.choice

    async def clear_prompt(self) -> None:
        if self._view is None:
            return
        self._view.stop()
        try:
            await self._interaction.edit_original_response(view=None)
        except discord.HTTPException as e:
            logger.warning("failed to clear rpc prompt: {}", e)

    async def ask_fields(self, spec: ActionSpec) -> ModalSubmission | None:
        if self._view is None or self._view.next_interaction is None:
            return None
        modal = ActionModal(spec)
        await self._view.next_interaction.response.send_modal(modal)
        return await modal.submission


def build_rpc_command(flow: InteractiveFlow, catalog: ActionCatalog) -> app_commands.Command:
    """The ``/rpc method:<name>`` slash command with catalog autocomplete."""

    @app_commands.command(name="rpc", description="Perform a staff RPC action")
    @app_commands.describe(method="The RPC method to perform")
    async def rpc(interaction: discord.Interaction, method: str) -> None:
        result = await flow.run(method, str(interaction.user.id), DiscordSurface(interaction))
        if result.state is FlowState.CANCELLED:
            logger.debug("rpc {} by {} cancelled", result.method, interaction.user.id)

    @rpc.autocomplete("method")
    async def method_autocomplete(
        interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        return [app_commands.Choice(name=name, value=name) for name in catalog.suggest(current)]

    return rpc


class StaffBot(discord.Client):
    """Discord client hosting the ``/rpc`` command and background jobs."""

    def __init__(
        self,
        *,
        config: Config,
        store: ListingStore,
        catalog: ActionCatalog,
        **discord_kwargs,
    ) -> None:
        intents = discord.Intents.default()
        intents.members = True
        if config.discord.proxy_url:
            discord_kwargs.setdefault("proxy", config.discord.proxy_url)
        super().__init__(intents=intents, **discord_kwargs)
        self.config = config
        self.store = store
        self.catalog = catalog
        self.tree = app_commands.CommandTree(self)
        self.platform = DiscordPlatform(self, config)
        self.role_sync: RoleSyncTask | None = None
        self._flow: InteractiveFlow | None = None

    def bind_flow(self, flow: InteractiveFlow) -> None:
        self._flow = flow

    async def setup_hook(self) -> None:
        if self._flow is None:
            raise RuntimeError("interactive flow must be bound before login")
        self.tree.add_command(build_rpc_command(self._flow, self.catalog))
        for guild_id in (self.config.servers.staff, self.config.servers.testing):
            if guild_id:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)

    async def on_ready(self) -> None:
        logger.info("{} is ready! Doing some minor DB fixes", self.user)
        await asyncio.to_thread(self.store.repair_stale_claims)
        if self.role_sync is not None:
            self.role_sync.start()

    async def bug_hunter_ids(self) -> list[str] | None:
        """Main-server members holding the bug hunter role; None when the cache is cold."""
        guild = self.get_guild(self.config.servers.main)
        if guild is None:
            logger.warning("Failed to get guild {}", self.config.servers.main)
            return None
        role = guild.get_role(self.config.roles.bug_hunters)
        if role is None:
            return None
        return [str(member.id) for member in role.members]

    async def close(self) -> None:
        if self.role_sync is not None:
            await self.role_sync.stop()
        await super().close()
