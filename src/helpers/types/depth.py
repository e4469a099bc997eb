from dataclasses import dataclass, field
from typing import Any, List, NamedTuple

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema

from helpers.types.common import NonNullStr


class Symbol(NonNullStr):
    """Trading pair like ethusdt. Always lower case, which is how the
    stream names and the log directories spell it"""

    def __new__(cls, s: str | None):
        if s is None:
            raise ValueError(f"Value for {cls} was None")
        if not s.strip():
            raise ValueError("Symbol must not be empty")
        return super(Symbol, cls).__new__(cls, s.strip().lower())

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(cls, handler(str))


class Level(NamedTuple):
    """Resting quantity at a price on one side of the book"""

    price: float
    quantity: float


@dataclass
class DepthSnapshot:
    """One full depth sample of the book

    event_time: UTC millis. The stream has no timestamp, so this is the time
        we received the message
    last_update_id: sequence id assigned by the exchange
    bids / asks: levels in the order the exchange sent them. Not guaranteed
        to be sorted by price
    """

    event_time: int
    last_update_id: int
    bids: List[Level] = field(default_factory=list)
    asks: List[Level] = field(default_factory=list)
