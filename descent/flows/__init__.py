"""Multi-step commands built on the session engine."""

from .barter import BarterFlow
from .combat import CombatFlow
from .explore import ExploreFlow
from .inventory import InventoryFlow
from .roll import RollFlow
from .story import StoryFlow
from .trade import TradeFlow

__all__ = [
    "BarterFlow",
    "CombatFlow",
    "ExploreFlow",
    "InventoryFlow",
    "RollFlow",
    "StoryFlow",
    "TradeFlow",
]
