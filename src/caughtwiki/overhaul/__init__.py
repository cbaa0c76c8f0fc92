"""
Overhaul Package

Guild templates: declarative specs, the JSON-backed store, and the applier
that tears down and rebuilds a guild's structure.
"""

from .spec import ChannelKind, Template, TemplateError, parse_template
from .store import TemplateStore
from .engine import ApplyInProgress, ApplyReport, EntityResult, TemplateApplier
from .progress import InteractionProgressReporter, ProgressReporter
from .rate_limiter import RateLimiter
from .reporting import send_safe_followup

__all__ = [
    "ChannelKind",
    "Template",
    "TemplateError",
    "parse_template",
    "TemplateStore",
    "ApplyInProgress",
    "ApplyReport",
    "EntityResult",
    "TemplateApplier",
    "InteractionProgressReporter",
    "ProgressReporter",
    "RateLimiter",
    "send_safe_followup",
]
