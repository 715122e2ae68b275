from __future__ import annotations

from datetime import datetime

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_events import register as register_events
from misc.commands.commands_lfg import register as register_lfg
from misc.commands.commands_owner import register as register_owner
from misc.commands.commands_ready import register as register_ready
from misc.discord_gates import member_has_any_role
from misc.events_runtime import register_runtime_events
from misc.events_runtime import stop_pollers
from misc.runtime_deps import RuntimeBootDeps


def wire_bot_runtime(
    bot,
    *,
    timers,
    started_at: datetime,
    send_chunked,
    event_store,
    poll_store,
    alarm_store,
    group_matcher,
    notifier,
    calendar_handler,
    polls_handler,
    player_alarm_job,
    admin_roles: set[str],
    flight_games: tuple[str, ...],
) -> None:
    boot = RuntimeBootDeps(
        pollers=(calendar_handler, polls_handler, player_alarm_job),
        timers=timers,
    )

    async def shutdown() -> None:
        if not hasattr(bot, "add_teardown"):
            cancelled = stop_pollers(boot)
            print(f"[Timers] shutdown cancelled jobs={cancelled}")
        await bot.close()

    def user_is_admin(member) -> bool:
        return member_has_any_role(member, admin_roles)

    command_deps = CommandDeps(
        send_chunked=send_chunked,
        timers=timers,
        started_at=started_at,
        event_store=event_store,
        poll_store=poll_store,
        alarm_store=alarm_store,
        group_matcher=group_matcher,
        notifier=notifier,
        shutdown_func=shutdown,
        flight_games=flight_games,
    )
    command_gates = CommandGates(
        user_is_admin=user_is_admin,
        admin_roles=admin_roles,
    )

    register_owner(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_events(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_lfg(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_ready(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(bot, boot=boot)
