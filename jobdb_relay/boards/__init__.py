"""
Board adapters - one strategy per supported job database
"""

from typing import Dict

from ..sites import get_site
from .base import BoardAdapter
from .careerbank import CareerbankBoard
from .jobins import JobinsBoard
from .jobmiru import JobmiruBoard

BOARD_CLASSES = {
    "careerbank": CareerbankBoard,
    "jobmiru": JobmiruBoard,
    "jobins": JobinsBoard,
}


def get_board(key: str, config) -> BoardAdapter:
    """Build the adapter for one source. Raises KeyError for unknown sources."""
    return BOARD_CLASSES[key](get_site(key), config)


def build_boards(config) -> Dict[str, BoardAdapter]:
    return {key: get_board(key, config) for key in BOARD_CLASSES}
