"""
Parse a saved tracker page offline and print what the engine extracts.

Usage:
    python scripts/parse_saved_page.py ttg detail sample-ttg/details.php
    python scripts/parse_saved_page.py ttg list sample-ttg/browse.php
    python scripts/parse_saved_page.py ttg user sample-ttg/index.php
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bs4 import BeautifulSoup

from core.config import SiteConfig, settings
from trackers.driver_factory import DriverFactory
from trackers.engine import extract
from trackers.registry import default_registry

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - [%(levelname)s] - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("site", help="site id, e.g. ttg")
    parser.add_argument("kind", choices=["detail", "list", "user"])
    parser.add_argument("path", type=Path)
    args = parser.parse_args()

    registry = default_registry()
    if args.site not in registry:
        logger.error("Unknown site %s (known: %s)", args.site, ", ".join(registry.ids()))
        return 1

    # Offline parsing never sends the cookie anywhere
    driver = DriverFactory.create(SiteConfig(id=args.site, cookie="offline"), registry)
    document = BeautifulSoup(args.path.read_text(encoding="utf-8"), "html.parser")

    if args.kind == "detail":
        print(asdict(driver.parse_detail(document)))
    elif args.kind == "list":
        items = driver.parse_torrent_list(document)
        print(f"📋 {len(items)} torrents")
        for item in items:
            print(f"  {item.id:>8}  {item.discount_level:<10} {item.title}")
    else:
        schema = driver.definition.user_info
        if schema is None:
            logger.error("Site %s has no user info schema", args.site)
            return 1
        result = extract(document, schema.selectors, driver.context)
        for name, value in result.values.items():
            print(f"  ✅ {name}: {value!r}")
        for name, error in result.errors.items():
            print(f"  ❌ {name}: {error}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
