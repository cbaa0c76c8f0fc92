from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import discord

log = logging.getLogger("caughtwiki.permissions")


class Capability(str, Enum):
    """Moderation capabilities, named after the discord.Permissions flag they need."""
    MANAGE_MESSAGES = "manage_messages"
    BAN_MEMBERS = "ban_members"
    KICK_MEMBERS = "kick_members"
    MODERATE_MEMBERS = "moderate_members"


def has_capability(member: Any, capability: Capability) -> bool:
    """True if ``member`` holds the permission (administrators hold them all)."""
    perms: discord.Permissions | None = getattr(member, "guild_permissions", None)
    if perms is None:
        return False
    return bool(perms.administrator or getattr(perms, capability.value, False))


def is_staff(member: Any, staff_role_id: int) -> bool:
    if staff_role_id and any(r.id == staff_role_id for r in getattr(member, "roles", [])):
        return True
    perms: discord.Permissions | None = getattr(member, "guild_permissions", None)
    return bool(perms and (perms.administrator or perms.manage_channels))


def can_act_on(actor: Any, target: Any) -> bool:
    """Role hierarchy check for member-targeted moderation.

    Non-members (e.g. a banned-by-id user) have no roles and are always allowed.
    """
    if getattr(actor, "id", None) == getattr(target, "id", None):
        return False
    target_top = getattr(target, "top_role", None)
    if target_top is None:
        return True
    guild = getattr(actor, "guild", None)
    if guild is not None and getattr(guild, "owner_id", None) == actor.id:
        return True
    if guild is not None and getattr(guild, "owner_id", None) == target.id:
        return False
    actor_top = getattr(actor, "top_role", None)
    if actor_top is None:
        return False
    return actor_top.position > target_top.position
