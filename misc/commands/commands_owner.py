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
    @bot.command(name="shutdown")
    async def cmd_shutdown(ctx: commands.Context):
        if not gates.user_is_admin(ctx.author):
            await ctx.send("This command is admin-only.")
            return
        if deps.shutdown_func is None:
            await ctx.send("Shutdown is not configured.")
            return

        print(f"[CFG] shutdown requested by user={ctx.author.id}")
        await ctx.send("Shutting down.")
        await deps.shutdown_func()
