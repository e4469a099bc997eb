from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from helpers.types.depth import DepthSnapshot, Level

# (price, quantity) formatted for display
LadderRow = Tuple[str, str]

DISPLAY_PRECISION = 4


class EmptyOrderbookSideError(Exception):
    """Raised when asking for the top of an empty side"""


@dataclass
class OrderbookSide:
    """Price to quantity on one side of the book. Prices are unique"""

    levels: Dict[float, float] = field(default_factory=dict)

    @classmethod
    def from_levels(cls, levels: Sequence[Level]) -> "OrderbookSide":
        """Folds levels in order. If a price shows up twice, the later
        quantity wins"""
        side = cls()
        for price, quantity in levels:
            side.levels[price] = quantity
        return side

    def is_empty(self):
        return len(self.levels) == 0

    def get_largest_price_level(self) -> Level:
        if self.is_empty():
            raise EmptyOrderbookSideError()
        return Level(*max(self.levels.items()))

    def get_smallest_price_level(self) -> Level:
        if self.is_empty():
            raise EmptyOrderbookSideError()
        return Level(*min(self.levels.items()))

    def top(self, depth: int, descending: bool) -> List[Level]:
        """The first depth levels sorted by price"""
        prices = sorted(self.levels, reverse=descending)[: max(depth, 0)]
        return [Level(price, self.levels[price]) for price in prices]


@dataclass
class OrderbookView:
    """The book as of a single snapshot"""

    bids: OrderbookSide = field(default_factory=OrderbookSide)
    asks: OrderbookSide = field(default_factory=OrderbookSide)

    @classmethod
    def from_snapshot(cls, snapshot: DepthSnapshot) -> "OrderbookView":
        return cls(
            bids=OrderbookSide.from_levels(snapshot.bids),
            asks=OrderbookSide.from_levels(snapshot.asks),
        )

    def best_bid(self) -> Level:
        return self.bids.get_largest_price_level()

    def best_ask(self) -> Level:
        return self.asks.get_smallest_price_level()

    def render(self, depth: int) -> Tuple[List[LadderRow], List[LadderRow]]:
        """Returns (ask rows, bid rows) ready for display

        Asks go from the lowest price up and bids from the highest price
        down, so both start at the top of the book. Each side has at most
        depth rows."""
        ask_rows = [
            _format_level(level) for level in self.asks.top(depth, descending=False)
        ]
        bid_rows = [
            _format_level(level) for level in self.bids.top(depth, descending=True)
        ]
        return ask_rows, bid_rows


def _format_level(level: Level) -> LadderRow:
    return (
        f"{level.price:.{DISPLAY_PRECISION}f}",
        f"{level.quantity:.{DISPLAY_PRECISION}f}",
    )
