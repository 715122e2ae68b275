from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="ready")
    async def cmd_ready(ctx: commands.Context, arg: str = ""):
        alarms = deps.alarm_store
        token = (arg or "").strip().lower()

        if token == "count":
            await ctx.author.send(f"There are currently {alarms.count()} player alarms set.")
            return

        try:
            threshold = int(token)
        except ValueError:
            await ctx.author.send("Usage: `!ready <# players>` or `!ready count`")
            return
        if threshold <= 0:
            await ctx.author.send("The player count must be a positive number.")
            return

        existed = alarms.register(threshold, ctx.author.id)
        if existed:
            await ctx.author.send(
                f"Your previous alarm was overwritten. You will be notified when the server reaches {threshold} players."
            )
        else:
            await ctx.author.send(f"You will be notified when the primary server reaches {threshold} players.")
        print(f"[Alarms] registered user={ctx.author.id} threshold={threshold} replaced={existed}")
