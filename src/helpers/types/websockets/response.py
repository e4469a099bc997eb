from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from helpers.types.depth import DepthSnapshot, Level, Symbol


class CombinedStreamWR(BaseModel):
    """Envelope for every message on the combined stream endpoint

    For example: {"stream": "ethusdt@depth20@100ms", "data": {...}}"""

    stream: str
    data: Dict[str, Any]

    model_config = ConfigDict(extra="allow")

    @property
    def symbol(self) -> Symbol:
        """The stream name starts with the symbol"""
        return Symbol(self.stream.split("@")[0])


class PartialDepthRM(BaseModel):
    """Partial book depth message. This is a full snapshot of the top
    levels, not a diff. The exchange does not send a timestamp with it"""

    last_update_id: int = Field(alias="lastUpdateId")
    # Prices and quantities come as strings to keep their precision
    bids: List[Tuple[str, str]] = []
    asks: List[Tuple[str, str]] = []

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_snapshot(self, event_time: int) -> DepthSnapshot:
        return DepthSnapshot(
            event_time=event_time,
            last_update_id=self.last_update_id,
            bids=parse_levels(self.bids),
            asks=parse_levels(self.asks),
        )


def parse_levels(levels: List[Tuple[str, str]]) -> List[Level]:
    """Converts [price, quantity] string pairs into levels, keeping order"""
    return [Level(float(price), float(quantity)) for price, quantity in levels]
