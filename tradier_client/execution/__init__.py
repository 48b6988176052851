"""
Execution package.

Order-form construction and validation for the order endpoints.

Example:
    from tradier_client.execution import OrderRequest, EQUITY
    client.place_order(OrderRequest(EQUITY, symbol="SPY", side="buy", quantity=1))
"""

from .orders import (
    COMBO,
    DAY,
    EQUITY,
    GTC,
    LIMIT,
    MARKET,
    MULTILEG,
    ONE_CANCELS_OTHER,
    ONE_TRIGGERS_ONE_CANCELS_OTHER,
    ONE_TRIGGERS_OTHER,
    OPTION,
    STOP,
    STOP_LIMIT,
    OrderLeg,
    OrderRequest,
    order_to_params,
    update_order_params,
)

__all__ = [
    "EQUITY",
    "OPTION",
    "MULTILEG",
    "COMBO",
    "ONE_TRIGGERS_OTHER",
    "ONE_CANCELS_OTHER",
    "ONE_TRIGGERS_ONE_CANCELS_OTHER",
    "MARKET",
    "LIMIT",
    "STOP",
    "STOP_LIMIT",
    "DAY",
    "GTC",
    "OrderLeg",
    "OrderRequest",
    "order_to_params",
    "update_order_params",
]
