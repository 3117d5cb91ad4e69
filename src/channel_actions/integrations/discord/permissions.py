"""Effective channel permission resolution for the bot user.

Follows Discord's documented order: guild owner and administrator
short-circuit, then the @everyone overwrite, role overwrites and finally the
member overwrite.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from .constants import DISCORD_PERMISSION_ADMINISTRATOR, DISCORD_PERMISSION_NAMES

ALL_PERMISSIONS = (1 << 50) - 1


def _bits(value: Any) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def compute_base_permissions(
    *,
    guild: Mapping[str, Any],
    roles: Iterable[Mapping[str, Any]],
    member_role_ids: Iterable[str],
    user_id: str,
) -> int:
    guild_id = str(guild.get("id") or "")
    if str(guild.get("owner_id") or "") == user_id:
        return ALL_PERMISSIONS
    member_roles = set(member_role_ids)
    permissions = 0
    for role in roles:
        role_id = str(role.get("id") or "")
        if role_id == guild_id or role_id in member_roles:
            permissions |= _bits(role.get("permissions"))
    if permissions & DISCORD_PERMISSION_ADMINISTRATOR:
        return ALL_PERMISSIONS
    return permissions


def apply_overwrites(
    base: int,
    *,
    overwrites: Iterable[Mapping[str, Any]],
    guild_id: str,
    member_role_ids: Iterable[str],
    user_id: str,
) -> int:
    if base == ALL_PERMISSIONS:
        return base
    by_id = {str(item.get("id")): item for item in overwrites}
    permissions = base

    everyone = by_id.get(guild_id)
    if everyone is not None:
        permissions &= ~_bits(everyone.get("deny"))
        permissions |= _bits(everyone.get("allow"))

    allow = 0
    deny = 0
    for role_id in member_role_ids:
        overwrite = by_id.get(str(role_id))
        if overwrite is None:
            continue
        allow |= _bits(overwrite.get("allow"))
        deny |= _bits(overwrite.get("deny"))
    permissions &= ~deny
    permissions |= allow

    member = by_id.get(user_id)
    if member is not None:
        permissions &= ~_bits(member.get("deny"))
        permissions |= _bits(member.get("allow"))
    return permissions


def permission_names(permissions: int) -> list[str]:
    return sorted(
        name for name, bit in DISCORD_PERMISSION_NAMES.items() if permissions & bit
    )


def summarize_channel_permissions(
    *,
    channel: Mapping[str, Any],
    guild: Mapping[str, Any],
    roles: Iterable[Mapping[str, Any]],
    member: Mapping[str, Any],
    user_id: str,
    overwrite_source: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Resolve the bot's permissions in ``channel``.

    Threads inherit overwrites from their parent; pass the parent channel as
    ``overwrite_source`` in that case.
    """
    guild_id = str(guild.get("id") or channel.get("guild_id") or "")
    member_role_ids = [str(role_id) for role_id in member.get("roles") or []]
    base = compute_base_permissions(
        guild=guild, roles=roles, member_role_ids=member_role_ids, user_id=user_id
    )
    source = overwrite_source if overwrite_source is not None else channel
    permissions = apply_overwrites(
        base,
        overwrites=source.get("permission_overwrites") or [],
        guild_id=guild_id,
        member_role_ids=member_role_ids,
        user_id=user_id,
    )
    return {
        "channelId": str(channel.get("id") or ""),
        "guildId": guild_id,
        "permissions": str(permissions),
        "names": permission_names(permissions),
        "isAdministrator": permissions == ALL_PERMISSIONS,
    }
