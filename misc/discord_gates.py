from __future__ import annotations

import discord


def member_has_any_role(member: discord.abc.User, role_names: set[str]) -> bool:
    # DMs carry a plain User without roles.
    roles = getattr(member, "roles", None)
    if not roles:
        return False
    wanted = {r.strip().lower() for r in role_names if r and r.strip()}
    return any(str(getattr(role, "name", "")).strip().lower() in wanted for role in roles)
