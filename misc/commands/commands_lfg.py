from __future__ import annotations

import re
from datetime import datetime
from datetime import timezone

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.errors import Rejection
from misc.notifier import JoinNotice
from state.models import GroupType

FLIGHT_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
FLIGHT_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})$")


def parse_flight_time(hhmm: str, mmdd: str, *, now: datetime) -> datetime:
    t = FLIGHT_TIME_RE.fullmatch((hhmm or "").strip())
    d = FLIGHT_DATE_RE.fullmatch((mmdd or "").strip())
    if not t or not d:
        raise ValueError(f"Invalid flight time: {hhmm} {mmdd}")
    return datetime(
        now.year,
        int(d.group(1)),
        int(d.group(2)),
        int(t.group(1)),
        int(t.group(2)),
        tzinfo=timezone.utc,
    )


def _parse_id(token: str) -> int | None:
    try:
        return int(str(token).strip())
    except ValueError:
        return None


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    matcher = deps.group_matcher

    async def _notify_full(record) -> None:
        recipients: list[int] = []
        for uid in [record.owner_id, *record.found]:
            if uid not in recipients:
                recipients.append(uid)
        for uid in recipients:
            try:
                await deps.notifier.notify(f"user:{uid}", record, "group_full")
            except Exception as e:
                print(f"[LFG] full notice failed group={record.id} user={uid}: {e}")

    async def _notify_joined(record, joiner) -> None:
        try:
            await deps.notifier.notify(
                f"user:{record.owner_id}",
                JoinNotice(record=record, joiner_name=str(joiner)),
                "joined",
            )
        except Exception as e:
            print(f"[LFG] join notice failed id={record.id}: {e}")

    async def _announce(selector: str, record) -> None:
        try:
            await deps.notifier.notify(selector, record, "created")
        except Exception as e:
            print(f"[LFG] announce failed selector={selector} id={record.id}: {e}")

    @bot.command(name="lfg")
    async def lfg_command(ctx: commands.Context, action: str = "list", *args: str):
        action = action.lower()
        author = ctx.author

        if action == "list":
            groups = matcher.list(GroupType.LFG)
            if not groups:
                await author.send("There are no active groups.")
                return
            lines = ["**Active groups:**"]
            for g in groups:
                lines.append(f"`{g.id}` **{g.name}** by {g.owner_name} ({len(g.found)}/{g.needed})")
            await deps.send_chunked(author, "\n".join(lines))
            return

        if action == "create" and len(args) >= 2 and _parse_id(args[0]) is not None:
            res = matcher.create_group(
                owner_id=author.id,
                owner_name=str(author),
                needed=int(args[0]),
                name=" ".join(args[1:]),
            )
            if res.rejection is Rejection.ALREADY_ACTIVE:
                await author.send("You already have an active LFG group!")
                return
            await author.send(
                f"You have created the new group **{res.record.name}**! "
                "You will be alerted when new players join your group and when it is full."
            )
            await _announce("lfg", res.record)
            return

        if action == "join" and len(args) == 1 and _parse_id(args[0]) is not None:
            res = matcher.join(GroupType.LFG, int(args[0]), author.id)
            if res.rejection is Rejection.NOT_FOUND:
                await author.send(
                    f"No group with the ID of {args[0]} was found. Run `!lfg list` to see the active groups."
                )
                return
            group = res.record
            # A full group leaves the registry before any send.
            if res.filled:
                matcher.remove(GroupType.LFG, group.id)
            await author.send(f"You have joined the group **{group.name}**.")
            await _notify_joined(group, author)
            if res.filled:
                await _notify_full(group)
            return

        if action == "delete" and len(args) == 1 and _parse_id(args[0]) is not None:
            res = matcher.delete(GroupType.LFG, int(args[0]), author.id)
            if res.rejection is Rejection.NOT_FOUND:
                await author.send(f"No group with the ID of {args[0]} exists.")
            elif res.rejection is Rejection.NOT_OWNER:
                await author.send("You cannot delete a group that you don't own.")
            else:
                await author.send(f"Successfully deleted your group **{res.record.name}**.")
            return

        await author.send("Usage: `!lfg list | create <# needed> <name> | join <id> | delete <id>`")

    @bot.command(name="flight")
    async def flight_command(ctx: commands.Context, action: str = "list", *args: str):
        action = action.lower()
        author = ctx.author

        if action == "list":
            flights = matcher.list(GroupType.FLIGHT)
            if not flights:
                await author.send("There are no active pickup flights.")
                return
            lines = ["**Pickup flights:**"]
            for f in flights:
                lines.append(
                    f"`{f.id}` **{f.game}-{f.id}** by {f.owner_name} at {f.time:%m/%d %H:%M}Z "
                    f"({len(f.found)} joined) {f.details}"
                )
            await deps.send_chunked(author, "\n".join(lines))
            return

        if action == "create" and len(args) >= 4:
            game = args[0].upper()
            if game not in deps.flight_games:
                await author.send(f"The `GAME` argument must be one of: {', '.join(deps.flight_games)}.")
                return
            try:
                when = parse_flight_time(args[1], args[2], now=deps.timers.now())
            except ValueError:
                await author.send("Flight time must look like `HH:MM MM/DD` (UTC).")
                return
            res = matcher.create_flight(
                owner_id=author.id,
                owner_name=str(author),
                game=game,
                time=when,
                details=" ".join(args[3:]),
            )
            if res.rejection is Rejection.ALREADY_ACTIVE:
                await author.send("You already have a registered pickup flight!")
                return
            flight = res.record
            await author.send(
                f"You have created a new **{flight.game}** flight! "
                f"Players can now join using your flight ID: **{flight.id}**."
            )
            await _announce("flights", flight)
            return

        if action == "join" and len(args) == 1 and _parse_id(args[0]) is not None:
            res = matcher.join(GroupType.FLIGHT, int(args[0]), author.id)
            if res.rejection is Rejection.NOT_FOUND:
                await author.send(
                    f"No flight exists with ID: **{args[0]}**. Run `!flight list` to see the active flights."
                )
                return
            flight = res.record
            await author.send(f"You have joined the flight **{flight.game}-{flight.id}**.")
            await _notify_joined(flight, author)
            return

        if action == "delete" and len(args) == 1 and _parse_id(args[0]) is not None:
            res = matcher.delete(GroupType.FLIGHT, int(args[0]), author.id)
            if res.rejection is Rejection.NOT_FOUND:
                await author.send(f"No flight with the ID of {args[0]} exists.")
            elif res.rejection is Rejection.NOT_OWNER:
                await author.send("You cannot delete a flight that you don't own.")
            else:
                await author.send(f"Successfully deleted your flight **{res.record.game}-{res.record.id}**.")
            return

        await author.send(
            "Usage: `!flight list | create <GAME> <HH:MM> <MM/DD> <details> | join <id> | delete <id>`"
        )
