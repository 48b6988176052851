from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tradier_client.core.exceptions import OrderValidationError

# Order classes
EQUITY = "equity"
OPTION = "option"
MULTILEG = "multileg"
COMBO = "combo"
ONE_TRIGGERS_OTHER = "oto"
ONE_CANCELS_OTHER = "oco"
ONE_TRIGGERS_ONE_CANCELS_OTHER = "otoco"

# Order types
MARKET = "market"
LIMIT = "limit"
STOP = "stop"
STOP_LIMIT = "stop_limit"

# Durations
DAY = "day"
GTC = "gtc"
PRE = "pre"
POST = "post"

# Order status reported by the API when a request was accepted.
STATUS_OK = "ok"

_LIMIT_TYPES = {LIMIT, STOP_LIMIT}
_STOP_TYPES = {STOP, STOP_LIMIT}
_CHANGEABLE_TYPES = {MARKET, LIMIT, STOP, STOP_LIMIT}
_CHANGEABLE_DURATIONS = {DAY, GTC}

Params = List[Tuple[str, str]]


@dataclass
class OrderLeg:
    symbol: str = ""
    option_symbol: str = ""
    side: str = ""
    quantity: float = 0.0
    type: str = ""
    price: float = 0.0
    stop_price: float = 0.0


@dataclass
class OrderRequest:
    """
    An order to place or preview.

    Attributes:
        order_class (str): One of equity/option/multileg/combo/oto/oco/otoco.
        symbol (str): Underlying (or equity) symbol.
        side (str): buy, sell, buy_to_open, sell_to_close, ...
        quantity (float): Whole number of shares/contracts.
        type (str): market, limit, stop, stop_limit (or debit/credit/even for spreads).
        duration (str): day, gtc, pre, post.
        price (float): Limit price for limit/stop_limit orders.
        stop_price (float): Stop price for stop/stop_limit orders.
        option_symbol (str): OCC symbol for single-leg option orders.
        legs (List[OrderLeg]): Legs for multileg/combo/oto/oco/otoco orders.
        tag (Optional[str]): Free-form order tag.
    """

    order_class: str
    symbol: str = ""
    side: str = ""
    quantity: float = 0.0
    type: str = MARKET
    duration: str = DAY
    price: float = 0.0
    stop_price: float = 0.0
    option_symbol: str = ""
    legs: List[OrderLeg] = field(default_factory=list)
    tag: Optional[str] = None


def _qty(value: float) -> str:
    return f"{value:.0f}"


def _money(value: float) -> str:
    return f"{value:.2f}"


def _price_params(
    order_type: str, price: float, stop_price: float, suffix: str = ""
) -> Params:
    params: Params = []
    if order_type in _LIMIT_TYPES:
        if price <= 0:
            raise OrderValidationError(
                f"cannot place {order_type} order without limit price"
            )
        params.append((f"price{suffix}", _money(price)))
    if order_type in _STOP_TYPES:
        if stop_price <= 0:
            raise OrderValidationError(
                f"cannot place {order_type} order without stop price"
            )
        params.append((f"stop{suffix}", _money(stop_price)))
    return params


def order_to_params(order: OrderRequest) -> Params:
    """
    Form fields for a create/preview order request.

    Raises:
        OrderValidationError: unknown class, missing legs, or a limit/stop
            type without its price.
    """
    params: Params = [("class", order.order_class), ("duration", order.duration)]

    if order.order_class in (EQUITY, OPTION):
        if order.quantity <= 0:
            raise OrderValidationError("quantity must be positive")
        params.append(("symbol", order.symbol))
        if order.order_class == OPTION and order.option_symbol:
            params.append(("option_symbol", order.option_symbol))
        params += [
            ("side", order.side),
            ("quantity", _qty(order.quantity)),
            ("type", order.type),
        ]
        params += _price_params(order.type, order.price, order.stop_price)
    elif order.order_class in (MULTILEG, COMBO):
        if not order.legs:
            raise OrderValidationError(f"{order.order_class} order needs legs")
        params += [("symbol", order.symbol), ("type", order.type)]
        params += _price_params(order.type, order.price, order.stop_price)
        for i, leg in enumerate(order.legs):
            params += [
                (f"option_symbol[{i}]", leg.option_symbol),
                (f"side[{i}]", leg.side),
                (f"quantity[{i}]", _qty(leg.quantity)),
            ]
    elif order.order_class in (
        ONE_TRIGGERS_OTHER,
        ONE_CANCELS_OTHER,
        ONE_TRIGGERS_ONE_CANCELS_OTHER,
    ):
        if len(order.legs) < 2:
            raise OrderValidationError(
                f"{order.order_class} order needs at least two legs"
            )
        for i, leg in enumerate(order.legs):
            params += [
                (f"symbol[{i}]", leg.symbol),
                (f"quantity[{i}]", _qty(leg.quantity)),
                (f"type[{i}]", leg.type),
                (f"side[{i}]", leg.side),
            ]
            if leg.option_symbol:
                params.append((f"option_symbol[{i}]", leg.option_symbol))
            params += _price_params(leg.type, leg.price, leg.stop_price, f"[{i}]")
    else:
        raise OrderValidationError(f"unknown order class: {order.order_class}")

    if order.tag:
        params.append(("tag", order.tag))
    return params


def update_order_params(order: OrderRequest) -> Params:
    """Form fields for modifying an open order (type, duration, prices only)."""
    if order.type not in _CHANGEABLE_TYPES:
        raise OrderValidationError(f"unknown order type: {order.type}")
    if order.duration not in _CHANGEABLE_DURATIONS:
        raise OrderValidationError(f"unknown order duration: {order.duration}")
    params: Params = [("type", order.type), ("duration", order.duration)]
    params += _price_params(order.type, order.price, order.stop_price)
    return params


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
    "PRE",
    "POST",
    "STATUS_OK",
    "OrderLeg",
    "OrderRequest",
    "order_to_params",
    "update_order_params",
]
