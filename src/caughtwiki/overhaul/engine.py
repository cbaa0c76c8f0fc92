from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import discord

from .progress import ProgressReporter
from .rate_limiter import RateLimiter
from .spec import ChannelKind, ChannelSpec, Template

log = logging.getLogger("caughtwiki.template_engine")

T = TypeVar("T")
V = TypeVar("V")

AUDIT_REASON = "Guild template"


class ApplyInProgress(RuntimeError):
    """Raised when a template is already being applied to the guild."""

    def __init__(self, guild_id: int) -> None:
        super().__init__(f"a template is already being applied to guild {guild_id}")
        self.guild_id = guild_id


@dataclass(frozen=True)
class EntityResult:
    kind: str  # role | category | channel | overwrite | parent | role_positions
    name: str
    action: str  # delete | create | resolve | reorder
    ok: bool
    error: Optional[str] = None


@dataclass
class ApplyReport:
    """Per-entity outcome of one template application."""
    template: Template
    guild_id: int
    results: List[EntityResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[EntityResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[EntityResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def count(self, kind: str, action: str, ok: bool = True) -> int:
        return sum(1 for r in self.results if r.kind == kind and r.action == action and r.ok is ok)

    @property
    def missing(self) -> Dict[str, List[str]]:
        """Template entities that do not exist after the run, by kind."""
        expected = {
            "role": self.template.role_names(),
            "category": self.template.category_names(),
            "channel": self.template.channel_names(),
        }
        created = {
            (r.kind, r.name) for r in self.results if r.action == "create" and r.ok
        }
        return {
            kind: [n for n in names if (kind, n) not in created]
            for kind, names in expected.items()
        }

    def summary(self) -> str:
        missing = self.missing
        lines = [
            f"Applied template '{self.template.name}'",
            f"Deleted: roles={self.count('role', 'delete')} channels={self.count('channel', 'delete')}",
            (
                f"Created: roles={self.count('role', 'create')} "
                f"categories={self.count('category', 'create')} channels={self.count('channel', 'create')}"
            ),
        ]
        if self.failed:
            lines.append(f"Failures: {len(self.failed)}")
            for r in self.failed:
                lines.append(f"- {r.action} {r.kind} {r.name}: {r.error or 'unknown error'}")
        for kind, names in missing.items():
            if names:
                lines.append(f"Missing {kind}s: {', '.join(names)}")
        return "\n".join(lines)


class TemplateApplier:
    """Resets a guild's roles, categories and channels to a template.

    Phases run in order; calls inside a phase are gathered through the rate
    limiter. A failed call becomes a report entry and never stops the run,
    so the guild can end up partially applied. Nothing is rolled back.
    """

    def __init__(self, rate_limiter: RateLimiter) -> None:
        self.rate_limiter = rate_limiter
        self._locks: Dict[int, asyncio.Lock] = {}

    def is_running(self, guild_id: int) -> bool:
        lock = self._locks.get(guild_id)
        return bool(lock and lock.locked())

    async def apply(
        self,
        guild: discord.Guild,
        template: Template,
        reporter: Optional[ProgressReporter] = None,
    ) -> ApplyReport:
        lock = self._locks.setdefault(guild.id, asyncio.Lock())
        if lock.locked():
            raise ApplyInProgress(guild.id)
        async with lock:
            return await self._apply(guild, template, reporter or ProgressReporter(template.name))

    async def _apply(self, guild: discord.Guild, template: Template, reporter: ProgressReporter) -> ApplyReport:
        report = ApplyReport(template=template, guild_id=guild.id)
        log.info("Applying template %r to guild %s", template.name, guild.id)

        # 1. roles (the default role cannot be deleted; integration roles are refused by the API)
        old_roles = [r for r in guild.roles if not r.is_default() and not r.managed]
        await self._run_phase(
            "Deleting Roles", old_roles, lambda r: self._delete("role", r), reporter, report,
        )

        # 2. channels, categories included
        old_channels = list(guild.channels)
        await self._run_phase(
            "Deleting Channels", old_channels, lambda c: self._delete("channel", c), reporter, report,
        )

        # 3. roles
        created_roles = await self._run_phase(
            "Creating Roles",
            list(template.roles),
            lambda spec: self._create(
                "role",
                spec.name,
                guild.create_role,
                name=spec.name,
                permissions=discord.Permissions(spec.permissions),
                colour=discord.Colour(spec.color),
                hoist=spec.hoist,
                reason=AUDIT_REASON,
            ),
            reporter,
            report,
        )
        roles: Dict[str, discord.Role] = {
            spec.name: role for spec, role in zip(template.roles, created_roles) if role is not None
        }
        await self._position_roles(guild, template, roles, report)

        # 4. categories
        created_categories = await self._run_phase(
            "Creating Categories",
            list(template.categories),
            lambda spec: self._create("category", spec.name, guild.create_category, spec.name, reason=AUDIT_REASON),
            reporter,
            report,
        )
        categories: Dict[str, discord.CategoryChannel] = {
            spec.name: cat for spec, cat in zip(template.categories, created_categories) if cat is not None
        }

        # 5. channels
        await self._run_phase(
            "Creating Channels",
            list(template.channels),
            lambda spec: self._create_channel(guild, spec, roles, categories, report),
            reporter,
            report,
        )

        # 6. notify
        summary = report.summary()
        if report.ok:
            log.info("Template %r applied to guild %s", template.name, guild.id)
        else:
            log.warning(
                "Template %r applied to guild %s with %d failure(s)", template.name, guild.id, len(report.failed)
            )
        await reporter.finalize(report.ok, summary)
        return report

    async def _run_phase(
        self,
        phase: str,
        items: Sequence[T],
        op: Callable[[T], Awaitable[Tuple[EntityResult, Optional[V]]]],
        reporter: ProgressReporter,
        report: ApplyReport,
    ) -> List[Optional[V]]:
        total = len(items)
        done = 0
        errors = 0
        await reporter.update(phase, 0, total, "Starting")

        async def run_one(item: T) -> Optional[V]:
            nonlocal done, errors
            result, value = await op(item)
            report.results.append(result)
            done += 1
            if not result.ok:
                errors += 1
            verb = "Done" if result.ok else "Failed"
            await reporter.update(phase, done, total, f"{verb}: {result.kind} {result.name}", errors=errors)
            return value

        return list(await asyncio.gather(*(run_one(i) for i in items)))

    async def _delete(self, kind: str, target: Any) -> Tuple[EntityResult, None]:
        name = getattr(target, "name", str(target))
        try:
            await self.rate_limiter.execute(target.delete, reason=AUDIT_REASON)
        except Exception as e:  # noqa: BLE001
            log.warning("Failed to delete %s %r: %s", kind, name, e)
            return EntityResult(kind, name, "delete", False, str(e)), None
        return EntityResult(kind, name, "delete", True), None

    async def _create(self, kind: str, name: str, func: Callable[..., Awaitable[V]], /, *args: Any, **kwargs: Any) -> Tuple[EntityResult, Optional[V]]:
        try:
            value = await self.rate_limiter.execute(func, *args, **kwargs)
        except Exception as e:  # noqa: BLE001
            log.warning("Failed to create %s %r: %s", kind, name, e)
            return EntityResult(kind, name, "create", False, str(e)), None
        return EntityResult(kind, name, "create", True), value

    async def _position_roles(
        self,
        guild: discord.Guild,
        template: Template,
        roles: Dict[str, discord.Role],
        report: ApplyReport,
    ) -> None:
        positions = {roles[spec.name]: spec.position for spec in template.roles if spec.position > 0 and spec.name in roles}
        if not positions:
            return
        try:
            await self.rate_limiter.execute(guild.edit_role_positions, positions=positions, reason=AUDIT_REASON)
        except Exception as e:  # noqa: BLE001
            log.warning("Failed to reorder roles for template %r: %s", template.name, e)
            report.results.append(EntityResult("role_positions", template.name, "reorder", False, str(e)))
            return
        report.results.append(EntityResult("role_positions", template.name, "reorder", True))

    def build_overwrites(
        self,
        guild: discord.Guild,
        spec: ChannelSpec,
        roles: Dict[str, discord.Role],
        report: Optional[ApplyReport] = None,
    ) -> Dict[Any, discord.PermissionOverwrite]:
        """Translate overwrite specs into discord.py overwrites keyed by role."""
        overwrites: Dict[Any, discord.PermissionOverwrite] = {}
        for ow in spec.overwrites:
            target = guild.default_role if ow.is_everyone else roles.get(ow.target)
            if target is None:
                if report is not None:
                    report.results.append(
                        EntityResult("overwrite", f"{spec.name}/{ow.target}", "resolve", False, "role was not created")
                    )
                continue
            overwrites[target] = discord.PermissionOverwrite.from_pair(
                discord.Permissions(ow.allow), discord.Permissions(ow.deny)
            )
        return overwrites

    async def _create_channel(
        self,
        guild: discord.Guild,
        spec: ChannelSpec,
        roles: Dict[str, discord.Role],
        categories: Dict[str, discord.CategoryChannel],
        report: ApplyReport,
    ) -> Tuple[EntityResult, Optional[discord.abc.GuildChannel]]:
        category = categories.get(spec.category) if spec.category else None
        if spec.category and category is None:
            report.results.append(
                EntityResult("parent", f"{spec.name}/{spec.category}", "resolve", False, "category was not created")
            )

        overwrites = self.build_overwrites(guild, spec, roles, report)
        if spec.kind is ChannelKind.VOICE:
            func = guild.create_voice_channel
        else:
            func = guild.create_text_channel
        return await self._create(
            "channel", spec.name, func, spec.name, category=category, overwrites=overwrites, reason=AUDIT_REASON,
        )
