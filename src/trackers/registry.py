"""
SiteRegistry: explicit registry of site definitions.

Built once with a fixed list of definitions and passed to whatever
composes drivers. Nothing registers itself at import time.

Usage:
    registry = default_registry()
    definition = registry.get("ttg")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from trackers.engine import validate_schema
from trackers.models import SiteDefinition

logger = logging.getLogger(__name__)


class SiteRegistry:
    """Site definitions keyed by id, in registration order."""

    def __init__(self, definitions: Iterable[SiteDefinition] = ()) -> None:
        self._definitions: dict[str, SiteDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: SiteDefinition) -> None:
        if definition.id in self._definitions:
            raise ValueError(f"site {definition.id!r} is already registered")
        if not definition.urls:
            raise ValueError(f"site {definition.id!r} declares no URLs")
        if definition.user_info is not None:
            validate_schema(definition.user_info)
        self._definitions[definition.id] = definition
        logger.debug("Registered site definition %s", definition.id)

    def get(self, site_id: str) -> SiteDefinition:
        try:
            return self._definitions[site_id]
        except KeyError:
            raise KeyError(f"unknown site: {site_id!r}") from None

    def get_or_default(self, site_id: str) -> SiteDefinition | None:
        return self._definitions.get(site_id)

    def ids(self) -> list[str]:
        return list(self._definitions)

    def __contains__(self, site_id: object) -> bool:
        return site_id in self._definitions

    def __iter__(self) -> Iterator[SiteDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)


def default_registry() -> SiteRegistry:
    """Registry holding every built-in site definition."""
    from trackers.drivers.ttg import TTG_DEFINITION

    return SiteRegistry([TTG_DEFINITION])
