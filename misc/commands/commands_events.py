from __future__ import annotations

import discord
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates


def _format_remaining(seconds: float) -> str:
    seconds = max(0, int(seconds))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="events")
    async def cmd_events(ctx: commands.Context):
        events = deps.event_store.list()
        if not events:
            await ctx.send("No upcoming events are being tracked.")
            return

        lines = ["**Upcoming events:**"]
        for ev in sorted(events, key=lambda e: e.start):
            when = discord.utils.format_dt(ev.start, "f")
            pending = [label for label, fired in ev.reminders.items() if not fired]
            tag = f"[{ev.group}] " if ev.group else ""
            rsvp = f" RSVPs {ev.rsvps or 0}/{ev.rsvp_limit}" if ev.rsvp_limit else ""
            lines.append(f"- {tag}**{ev.title}** {when}{rsvp} (pending: {', '.join(pending) or 'none'})")
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="polls")
    async def cmd_polls(ctx: commands.Context):
        polls = deps.poll_store.list()
        if not polls:
            await ctx.send("No open polls are being tracked.")
            return

        lines = ["**Open polls:**"]
        for poll in sorted(polls, key=lambda p: p.close_date):
            closes = discord.utils.format_dt(poll.close_date, "R")
            yes = poll.votes.get("Yes", 0)
            no = poll.votes.get("No", 0)
            lines.append(
                f"- [{poll.rule.type}] **{poll.question}** Yes {yes} / No {no}, "
                f"needs {round(poll.rule.percent_to_pass * 100)}%, closes {closes}"
            )
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="alerts")
    async def cmd_alerts(ctx: commands.Context, limit: int = 20):
        jobs = deps.timers.jobs()
        if not jobs:
            await ctx.send("No timers are scheduled.")
            return

        lim = max(1, min(int(limit or 20), 100))
        now = deps.timers.now()
        lines = [f"Scheduled timers (next {min(lim, len(jobs))} of {len(jobs)}):"]
        for job in jobs[:lim]:
            kind = "every" if job.interval_seconds else "once"
            remaining = _format_remaining((job.next_run - now).total_seconds())
            lines.append(f"- {job.key} ({kind}) in {remaining}")
        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines) + "\n```")

    @bot.command(name="stats")
    async def cmd_stats(ctx: commands.Context):
        now = deps.timers.now()
        uptime = _format_remaining((now - deps.started_at).total_seconds()) if deps.started_at else "unknown"
        lines = [
            f"Uptime: {uptime}",
            f"Events tracked: {len(deps.event_store)}",
            f"Polls tracked: {len(deps.poll_store)}",
            f"Active groups: {len(deps.group_matcher.groups)}",
            f"Pickup flights: {len(deps.group_matcher.flights)}",
            f"Player alarms: {len(deps.alarm_store)}",
            f"Timers: {len(deps.timers.jobs())}",
        ]
        await ctx.send("```\n" + "\n".join(lines) + "\n```")
