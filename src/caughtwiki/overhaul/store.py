from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .spec import Template, TemplateError, parse_template

log = logging.getLogger("caughtwiki.template_store")


class TemplateStore:
    """Templates loaded once from a directory of ``*.json`` files and held in memory."""

    def __init__(self, templates: Optional[Dict[str, Template]] = None) -> None:
        self._templates: Dict[str, Template] = dict(templates or {})

    @classmethod
    def from_directory(cls, directory: str | Path) -> "TemplateStore":
        path = Path(directory)
        if not path.is_dir():
            log.warning("Template directory %s does not exist; no templates loaded", path)
            return cls()

        templates: Dict[str, Template] = {}
        for file in sorted(path.glob("*.json")):
            try:
                text = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise TemplateError(str(file), f"unreadable file: {e}") from e
            try:
                raw = json.loads(text)
            except json.JSONDecodeError as e:
                raise TemplateError(str(file), f"invalid JSON: {e}") from e

            template = parse_template(raw, source=str(file))
            if template.name in templates:
                raise TemplateError(str(file), f"duplicate template name {template.name!r}")
            templates[template.name] = template
            log.info(
                "Loaded template %r from %s (roles=%d categories=%d channels=%d)",
                template.name,
                file.name,
                len(template.roles),
                len(template.categories),
                len(template.channels),
            )

        log.info("Template store ready: %d template(s)", len(templates))
        return cls(templates)

    def names(self) -> List[str]:
        return sorted(self._templates)

    def get(self, name: str) -> Optional[Template]:
        return self._templates.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)
