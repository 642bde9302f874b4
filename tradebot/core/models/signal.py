"""Trade signal models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Minimum confidence for a BUY/SELL signal to be acted upon
ACTIONABLE_CONFIDENCE = Decimal("0.6")


class SignalType(str, Enum):
    """Signal direction."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeSignal(BaseModel):
    """Immutable signal emitted by a strategy evaluation."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    type: SignalType
    price: Decimal
    confidence: Decimal = Field(ge=0, le=1)
    strategy_name: str
    timestamp: datetime
    reason: str

    @property
    def actionable(self) -> bool:
        """True if this signal should trigger an order."""
        return self.type != SignalType.HOLD and self.confidence >= ACTIONABLE_CONFIDENCE
