from __future__ import annotations

from typing import Any
from typing import Callable

import discord
from discord.ext import commands
from misc.runtime_deps import RuntimeBootDeps


class UOBot(commands.Bot):
    """``commands.Bot`` that runs teardown hooks on every close path."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._teardown_hooks: list[Callable[[], Any]] = []

    def add_teardown(self, func: Callable[[], Any]) -> None:
        self._teardown_hooks.append(func)

    async def close(self) -> None:
        hooks, self._teardown_hooks = self._teardown_hooks, []
        for func in hooks:
            try:
                func()
            except Exception as e:
                print(f"[Timers] teardown error: {e}")
        await super().close()


def start_pollers(boot: RuntimeBootDeps) -> int:
    started = 0
    for poller in boot.pollers:
        if poller.start():
            started += 1
    return started


def stop_pollers(boot: RuntimeBootDeps) -> int:
    for poller in boot.pollers:
        poller.clear()
    return boot.timers.cancel_all()


def register_runtime_events(
    bot: commands.Bot,
    *,
    boot: RuntimeBootDeps,
) -> None:
    def _teardown() -> None:
        cancelled = stop_pollers(boot)
        print(f"[Timers] close cancelled jobs={cancelled}")

    if hasattr(bot, "add_teardown"):
        bot.add_teardown(_teardown)

    @bot.event
    async def on_ready():
        print(f"UO bot is online as {bot.user}")
        # on_ready fires again after every reconnect.
        if getattr(bot, "_pollers_started", False):
            return
        bot._pollers_started = True
        started = start_pollers(boot)
        print(f"[Timers] pollers started={started}")

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return
        if (message.content or "").lstrip().startswith("!"):
            await bot.process_commands(message)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
            await ctx.send(f"Invalid arguments: {error}")
            return
        print(f"[CFG] command={getattr(ctx.command, 'name', None)} error: {error}")
