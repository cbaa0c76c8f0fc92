"""
Guild Template Model

Declarative description of a guild's roles, categories and channels,
parsed from one JSON document per template. Instances are frozen and are
never written back to disk.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

EVERYONE = "everyone"


class TemplateError(ValueError):
    """Raised when a template document is malformed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ChannelKind(Enum):
    """Channel type enumeration."""
    TEXT = "text"
    VOICE = "voice"


@dataclass(frozen=True)
class RoleSpec:
    name: str
    color: int = 0
    hoist: bool = False
    position: int = 0
    permissions: int = 0


@dataclass(frozen=True)
class CategorySpec:
    name: str


@dataclass(frozen=True)
class OverwriteSpec:
    """Allow/deny bitmasks for a role name or the ``everyone`` marker."""
    target: str
    allow: int = 0
    deny: int = 0

    @property
    def is_everyone(self) -> bool:
        return self.target == EVERYONE


@dataclass(frozen=True)
class ChannelSpec:
    name: str
    kind: ChannelKind = ChannelKind.TEXT
    category: Optional[str] = None
    overwrites: Tuple[OverwriteSpec, ...] = ()


@dataclass(frozen=True)
class Template:
    name: str
    roles: Tuple[RoleSpec, ...] = ()
    categories: Tuple[CategorySpec, ...] = ()
    channels: Tuple[ChannelSpec, ...] = ()

    def role_names(self) -> List[str]:
        return [r.name for r in self.roles]

    def category_names(self) -> List[str]:
        return [c.name for c in self.categories]

    def channel_names(self) -> List[str]:
        return [c.name for c in self.channels]


# ------------------------
# Parsing
# ------------------------

def _require_name(raw: Dict[str, Any], where: str, source: str) -> str:
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise TemplateError(source, f"{where}.name must be a non-empty string")
    return name.strip()


def _non_negative_int(value: Any, where: str, source: str) -> int:
    # bool is an int subclass; "hoist": true in a bitmask slot is a mistake
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TemplateError(source, f"{where} must be a non-negative integer")
    return value


def parse_color(value: Any, where: str = "color", source: str = "<template>") -> int:
    """Convert ``#FFAA00``, ``FFAA00`` or an int into a colour value."""
    if value is None:
        return 0
    if isinstance(value, str):
        s = value.strip().lstrip("#")
        if len(s) != 6:
            raise TemplateError(source, f"{where} must be #rrggbb, got {value!r}")
        try:
            return int(s, 16)
        except ValueError:
            raise TemplateError(source, f"{where} must be #rrggbb, got {value!r}") from None
    value = _non_negative_int(value, where, source)
    if value > 0xFFFFFF:
        raise TemplateError(source, f"{where} is out of range")
    return value


def _as_list(raw: Dict[str, Any], key: str, source: str) -> List[Dict[str, Any]]:
    items = raw.get(key, [])
    if items is None:
        return []
    if not isinstance(items, list):
        raise TemplateError(source, f"{key} must be a list")
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise TemplateError(source, f"{key}[{i}] must be an object")
    return items


def _check_unique(names: List[str], what: str, source: str) -> None:
    seen: set[str] = set()
    for n in names:
        if n in seen:
            raise TemplateError(source, f"duplicate {what} name {n!r}")
        seen.add(n)


def _parse_role(raw: Dict[str, Any], i: int, source: str) -> RoleSpec:
    where = f"roles[{i}]"
    hoist = raw.get("hoist", False)
    if not isinstance(hoist, bool):
        raise TemplateError(source, f"{where}.hoist must be a boolean")
    return RoleSpec(
        name=_require_name(raw, where, source),
        color=parse_color(raw.get("color"), f"{where}.color", source),
        hoist=hoist,
        position=_non_negative_int(raw.get("position", 0), f"{where}.position", source),
        permissions=_non_negative_int(raw.get("permissions", 0), f"{where}.permissions", source),
    )


def _parse_overwrite(raw: Dict[str, Any], where: str, role_names: set[str], source: str) -> OverwriteSpec:
    target = raw.get("target")
    if not isinstance(target, str) or not target.strip():
        raise TemplateError(source, f"{where}.target must be a role name or {EVERYONE!r}")
    target = target.strip()
    if target != EVERYONE and target not in role_names:
        raise TemplateError(source, f"{where}.target references unknown role {target!r}")
    return OverwriteSpec(
        target=target,
        allow=_non_negative_int(raw.get("allow", 0), f"{where}.allow", source),
        deny=_non_negative_int(raw.get("deny", 0), f"{where}.deny", source),
    )


def _parse_channel(raw: Dict[str, Any], i: int, categories: set[str], role_names: set[str], source: str) -> ChannelSpec:
    where = f"channels[{i}]"
    kind_raw = raw.get("type", ChannelKind.TEXT.value)
    try:
        kind = ChannelKind(kind_raw)
    except ValueError:
        allowed = ", ".join(k.value for k in ChannelKind)
        raise TemplateError(source, f"{where}.type must be one of: {allowed}") from None

    category = raw.get("category")
    if category is not None:
        if isinstance(category, str):
            category = category.strip()
        if not isinstance(category, str) or category not in categories:
            raise TemplateError(source, f"{where}.category references unknown category {category!r}")

    overwrites = tuple(
        _parse_overwrite(ow, f"{where}.overwrites[{j}]", role_names, source)
        for j, ow in enumerate(_as_list(raw, "overwrites", source))
    )
    return ChannelSpec(
        name=_require_name(raw, where, source),
        kind=kind,
        category=category,
        overwrites=overwrites,
    )


def parse_template(raw: Any, source: str = "<template>") -> Template:
    """Build a :class:`Template` from a decoded JSON document."""
    if not isinstance(raw, dict):
        raise TemplateError(source, "template must be a JSON object")

    name = _require_name(raw, "template", source)

    roles = tuple(_parse_role(r, i, source) for i, r in enumerate(_as_list(raw, "roles", source)))
    _check_unique([r.name for r in roles], "role", source)

    categories = tuple(
        CategorySpec(name=_require_name(c, f"categories[{i}]", source))
        for i, c in enumerate(_as_list(raw, "categories", source))
    )
    _check_unique([c.name for c in categories], "category", source)

    category_names = {c.name for c in categories}
    role_names = {r.name for r in roles}
    channels = tuple(
        _parse_channel(c, i, category_names, role_names, source)
        for i, c in enumerate(_as_list(raw, "channels", source))
    )
    _check_unique([c.name for c in channels], "channel", source)

    return Template(name=name, roles=roles, categories=categories, channels=channels)
