"""Global enums — values must match the tag values exchanged with the processes."""

from enum import Enum


class OrderSide(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


class OrderType(str, Enum):
    MARKET = "Market"
    LIMIT = "Limit"
    LIMIT_MAKER = "Limit-Maker"


class OrderStatus(str, Enum):
    NEW = "New"
    PARTIALLY_FILLED = "Partially-Filled"
    FILLED = "Filled"
    CANCELED = "Canceled"
    FAILED = "Failed"


TERMINAL_ORDER_STATUSES = frozenset(
    {OrderStatus.FILLED, OrderStatus.CANCELED, OrderStatus.FAILED}
)


class Action(str, Enum):
    """Values of the Action tag used by the SDK."""
    TRANSFER = "Transfer"
    CREDIT_NOTICE = "Credit-Notice"
    DEBIT_NOTICE = "Debit-Notice"
    TRANSFER_ERROR = "Transfer-Error"
    BALANCE = "Balance"
    RESERVES = "Reserves"
    ACCOUNT_SUMMARY = "Account-Summary"
    ORDER_BOOKED = "Order-Booked"
    CANCEL_ORDER = "Cancel-Order"
    CANCEL_ORDER_ERROR = "Cancel-Order-Error"
    COLLATERAL_DEPOSITED = "Collateral-Deposited"


class OperationType(str, Enum):
    """Values of the X-Operation-Type tag carried by transfers."""
    SWAP = "Swap"
    DEPOSIT_COLLATERAL = "Deposit-Collateral"
