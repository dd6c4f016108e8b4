"""
DriverFactory: builds the driver for a configured site.

Flow:
  Step 1 → Look up the SiteDefinition in the registry
  Step 2 → Use the definition's create_driver hook when it has one
  Step 3 → Otherwise fall back to a plain NexusPHPDriver

Usage:
    driver = DriverFactory.create(SiteConfig(id="ttg", cookie="..."), registry)
    item = await driver.get_torrent_detail(guid, link)
"""

from __future__ import annotations

import logging

from core.config import SiteConfig
from trackers.drivers.base import BaseDriver, Fetcher
from trackers.drivers.nexusphp import NexusPHPDriver
from trackers.models import SiteKind
from trackers.registry import SiteRegistry

logger = logging.getLogger(__name__)

_GENERIC_DRIVERS: dict[SiteKind, type[NexusPHPDriver]] = {
    SiteKind.NEXUSPHP: NexusPHPDriver,
}


class DriverFactory:
    """Creates the correct BaseDriver instance for a configured site."""

    @staticmethod
    def create(
        config: SiteConfig,
        registry: SiteRegistry,
        fetcher: Fetcher | None = None,
    ) -> BaseDriver:
        """
        Instantiate the driver for `config.id`.

        Raises KeyError when the site is not registered.
        """
        definition = registry.get(config.id)

        if definition.create_driver is not None:
            logger.info("Using custom driver for site=%s.", config.id)
            return definition.create_driver(config, registry, fetcher)

        driver_cls = _GENERIC_DRIVERS[definition.kind]
        logger.info("Using %s for site=%s.", driver_cls.__name__, config.id)
        return driver_cls(
            definition,
            config.base_url or definition.urls[0],
            config.cookie,
            fetcher,
        )
