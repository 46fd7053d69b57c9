"""Admin check for knowledge base management commands."""

import discord


def is_admin(member: discord.abc.User | None, admin_role_id: int | None = None) -> bool:
    """
    True if the member holds the configured admin role or the Manage Server permission.

    Direct messages carry a plain ``discord.User`` rather than a member, which
    is never an admin.
    """
    if not isinstance(member, discord.Member):
        return False

    if admin_role_id is not None and member.get_role(admin_role_id) is not None:
        return True

    return member.guild_permissions.manage_guild
