"""
pulse.bot.cogs.membership — Joins, leaves, bans & referral attribution
=======================================================================

Requires the GUILD_MEMBERS privileged intent.

On every join the guild's invite list is re-fetched and diffed against the
stored snapshot to find which invite was used; its creator earns a referral
point unless excluded.  New invites are folded into the snapshot as soon as
they're created so the next diff has a correct baseline.

The invite fetch is an await.  Two joins landing together can interleave
around it and one of them may go unattributed; see
:mod:`pulse.engine.referrals`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pulse.bot import adapters

if TYPE_CHECKING:
    from pulse.bot.core import PulseBot

logger = logging.getLogger(__name__)


class Membership(commands.Cog, name="Membership"):
    """Member lifecycle analytics and referral scoring."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        """GUILD_MEMBER_ADD → join record + referral attribution."""
        try:
            await self._handle_join(member)
        except Exception:
            logger.exception(
                "Error handling referral on member join for %s", member.id,
                extra={"event_type": "member_join", "user_id": member.id},
            )

    async def _handle_join(self, member: discord.Member) -> None:
        guild = member.guild
        if not self.bot.is_tracked_guild(guild):
            return

        event = adapters.member_joined(member)
        self.bot.analytics.capture_all(self.bot.scoring.handle(event))
        logger.info("User joined: %s (ID: %d)", member, member.id)

        # --- Referral detection via invite usage diff -----------------------
        try:
            invites = await guild.invites()
        except (discord.Forbidden, discord.HTTPException):
            logger.exception("Could not fetch invites for guild %s; referral skipped", guild.id)
            return

        diff = self.bot.scoring.resolve_join(
            guild.id, [adapters.invite_info(inv) for inv in invites],
        )
        invite = diff.credited
        if invite is None or invite.inviter is None:
            logger.info("Referral: %s joined but no invite diff detected", member)
            return

        inviter = await self.bot.resolve_member(guild, invite.inviter.id)
        outcome = self.bot.scoring.credit_referral(
            event, diff, adapters.member_info(inviter) if inviter is not None else None,
        )
        self.bot.analytics.capture_all(outcome.records)

        if outcome.new_count is not None:
            logger.info(
                "Referral: %s joined via invite %s from %s (total %d)",
                member, invite.code, invite.inviter.username, outcome.new_count,
            )
        else:
            logger.info(
                "Referral NOT COUNTED: inviter %s excluded_staff_or_bot", invite.inviter.username,
            )

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite) -> None:
        """Keep the invite snapshot in sync and capture the creation."""
        try:
            if not isinstance(invite.guild, discord.Guild) or not self.bot.is_tracked_guild(invite.guild):
                return
            event = adapters.invite_created(invite)
            self.bot.analytics.capture_all(self.bot.scoring.handle(event))
            logger.info(
                "Invite created in %s: https://discord.gg/%s (by %s)",
                invite.guild.name, invite.code, invite.inviter or "unknown",
            )
        except Exception:
            logger.exception("Error processing invite_create %s", invite.code)

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member) -> None:
        """GUILD_MEMBER_REMOVE → left record."""
        try:
            if not self.bot.is_tracked_guild(member.guild):
                return
            event = adapters.member_left(member)
            self.bot.analytics.capture_all(self.bot.scoring.handle(event))
            logger.info("User left: %s (ID: %d)", member, member.id)
        except Exception:
            logger.exception(
                "Error processing member_leave for %s", member.id,
                extra={"event_type": "member_leave", "user_id": member.id},
            )

    @commands.Cog.listener()
    async def on_member_ban(self, guild: discord.Guild, user: discord.User | discord.Member) -> None:
        """GUILD_BAN_ADD → banned record."""
        try:
            if not self.bot.is_tracked_guild(guild):
                return
            event = adapters.ban_added(guild, user)
            self.bot.analytics.capture_all(self.bot.scoring.handle(event))
            logger.info("User banned: %s in %s", user, guild.name)
        except Exception:
            logger.exception("Error processing ban of %s", user.id)


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Membership(bot))
