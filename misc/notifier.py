from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import discord

from misc.errors import NotifyError
from state.models import CalendarEvent
from state.models import Flight
from state.models import Group
from state.models import PollThread


@dataclass(frozen=True, slots=True)
class JoinNotice:
    record: Group | Flight
    joiner_name: str


def render_notification(record: Any, context: str) -> str:
    if isinstance(record, JoinNotice):
        target = record.record
        if isinstance(target, Flight):
            label = f"flight **{target.game}-{target.id}**"
        else:
            label = f"group **{target.name}**"
        return f"{record.joiner_name} has joined your {label} ({len(target.found)} joined so far)."

    if isinstance(record, CalendarEvent):
        when = discord.utils.format_dt(record.start, "F")
        lines = [f"**Reminder:** *{record.title}* starts in {context} ({when})."]
        if record.rsvp_limit:
            lines.append(f"RSVPs: {record.rsvps or 0}/{record.rsvp_limit}")
        if record.url:
            lines.append(record.url)
        if record.img:
            lines.append(record.img)
        return "\n".join(lines)

    if isinstance(record, PollThread):
        yes = record.votes.get("Yes", 0)
        no = record.votes.get("No", 0)
        if context == "open":
            pct = round(record.rule.percent_to_pass * 100)
            closes = discord.utils.format_dt(record.close_date, "R")
            return (
                f"**New {record.rule.type.title()} poll:** {record.question}\n"
                f"Needs {pct}% yes to pass. Closes {closes}.\n{record.url}"
            )
        outcome = "passed" if record.passing else "failed"
        return f"**Poll closed:** {record.question}\nYes {yes} / No {no}, {outcome}.\n{record.url}"

    if isinstance(record, Group):
        if context == "group_full":
            return f"Your group **{record.name}** is full with {len(record.found)} players. Have fun!"
        return f"New group **{record.name}** (id {record.id}) by {record.owner_name} needs {record.needed} players."

    if isinstance(record, Flight):
        when = discord.utils.format_dt(record.time, "f")
        return (
            f"New **{record.game}** pickup flight {record.game}-{record.id} by {record.owner_name} at {when}.\n"
            f"{record.details}"
        )

    if context == "player_count" and isinstance(record, dict):
        return (
            f"The primary server has reached **{record.get('players')}** players "
            f"(your alarm was set for {record.get('threshold')})."
        )

    return str(record)


class DiscordNotifier:
    """Resolves a channel selector and posts a plain text notification."""

    def __init__(
        self,
        bot,
        *,
        main_channel_id: int,
        regulars_channel_id: int = 0,
        lfg_channel_id: int = 0,
        flights_channel_id: int = 0,
        group_channel_ids: dict[str, int] | None = None,
    ) -> None:
        self.bot = bot
        self.main_channel_id = int(main_channel_id or 0)
        self.regulars_channel_id = int(regulars_channel_id or 0)
        self.lfg_channel_id = int(lfg_channel_id or 0)
        self.flights_channel_id = int(flights_channel_id or 0)
        self.group_channel_ids = {str(k).upper(): int(v) for k, v in (group_channel_ids or {}).items()}

    def channel_id_for(self, selector: str, record: Any) -> int:
        if selector == "events":
            group = str(getattr(record, "group", "") or "").upper()
            return self.group_channel_ids.get(group) or self.main_channel_id
        if selector == "polls":
            return self.regulars_channel_id or self.main_channel_id
        if selector == "lfg":
            return self.lfg_channel_id or self.main_channel_id
        if selector == "flights":
            return self.flights_channel_id or self.main_channel_id
        raise NotifyError(f"Unknown channel selector: {selector}")

    async def _destination(self, selector: str, record: Any):
        if selector.startswith("user:"):
            user_id = int(selector.split(":", 1)[1])
            user = self.bot.get_user(user_id)
            if user is None:
                user = await self.bot.fetch_user(user_id)
            return user

        channel_id = self.channel_id_for(selector, record)
        if channel_id <= 0:
            raise NotifyError(f"No channel configured for selector {selector}")
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id)
        return channel

    async def notify(self, selector: str, record: Any, context: str) -> None:
        try:
            destination = await self._destination(selector, record)
            await destination.send(render_notification(record, context))
        except NotifyError:
            raise
        except (discord.HTTPException, ValueError) as e:
            raise NotifyError(f"{selector}: {e}") from e
        print(f"[Notify] sent selector={selector} context={context}")
