"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Exchange(str, Enum):
    NSE = "NSE"
    BSE = "BSE"


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class ProductType(str, Enum):
    """CNC = delivery (full payment). MIS = intraday (leveraged, closed by cutoff)."""
    CNC = "CNC"
    MIS = "MIS"


class TransactionStatus(str, Enum):
    EXECUTED = "EXECUTED"
