"""Drivers package for tracker site scraping."""

from trackers.drivers.base import BaseDriver
from trackers.drivers.nexusphp import NexusPHPDriver, extract_torrent_id_from_link
from trackers.drivers.ttg import TTG_DEFINITION, create_ttg_driver

__all__ = [
    "BaseDriver",
    "NexusPHPDriver",
    "TTG_DEFINITION",
    "create_ttg_driver",
    "extract_torrent_id_from_link",
]
