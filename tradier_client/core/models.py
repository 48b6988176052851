from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from tradier_client.core.timeutils import DateTime

_API_MODEL_CONFIG = {
    "populate_by_name": True,
    "extra": "allow",
}


class FaultDetail(BaseModel):
    errorcode: str = ""

    model_config = {"extra": "ignore"}


class Fault(BaseModel):
    faultstring: str = ""
    detail: FaultDetail = Field(default_factory=FaultDetail)

    model_config = {"extra": "ignore"}

    @field_validator("detail", mode="before")
    @classmethod
    def _coerce_detail(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return {"errorcode": value or ""}
        return value


class FaultInfo(BaseModel):
    """
    Error payload of a non-200 response.

    Tradier answers with either ``{"fault": {"faultstring", "detail":
    {"errorcode"}}}`` or ``{"errors": {"error": "..." | ["...", ...]}}``; any
    JSON object decodes, missing parts stay empty.

    Attributes:
        http_status_code (int): Status of the response that carried the fault.
        fault (Fault): Gateway fault, including the machine-readable code.
        errors (List[str]): Validation messages from the API itself.
    """

    http_status_code: int = 0
    fault: Fault = Field(default_factory=Fault)
    errors: List[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("errors", mode="before")
    @classmethod
    def _coerce_errors(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            value = value.get("error")
        if value is None:
            return []
        if isinstance(value, list):
            return [str(v) for v in value]
        return [str(value)]

    @property
    def fault_code(self) -> str:
        return self.fault.detail.errorcode

    @property
    def fault_string(self) -> str:
        return self.fault.faultstring

    @property
    def message(self) -> str:
        if self.fault.faultstring:
            return self.fault.faultstring
        return "; ".join(self.errors)


class RateLimit(BaseModel):
    """Rate-limit state reported in response headers."""

    available: Optional[int] = None
    expiry: Optional[DateTime] = None


class AccountBalances(BaseModel):
    account_number: str = ""
    account_type: str = ""
    total_equity: Optional[float] = None
    total_cash: Optional[float] = None
    market_value: Optional[float] = None
    open_pl: Optional[float] = None
    close_pl: Optional[float] = None
    pending_orders_count: Optional[int] = None

    model_config = _API_MODEL_CONFIG


class Position(BaseModel):
    id: int = 0
    symbol: str = ""
    quantity: float = 0.0
    cost_basis: float = 0.0
    date_acquired: Optional[datetime] = None

    model_config = _API_MODEL_CONFIG


class Event(BaseModel):
    amount: float = 0.0
    date: Optional[datetime] = None
    type: str = ""
    description: str = ""

    model_config = _API_MODEL_CONFIG


class ClosedPosition(BaseModel):
    symbol: str = ""
    quantity: float = 0.0
    cost: float = 0.0
    proceeds: float = 0.0
    gain_loss: float = 0.0
    gain_loss_percent: float = 0.0
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    term: int = 0

    model_config = _API_MODEL_CONFIG


class Order(BaseModel):
    id: int = 0
    type: str = ""
    symbol: str = ""
    side: str = ""
    quantity: float = 0.0
    status: str = ""
    duration: str = ""
    price: Optional[float] = None
    stop_price: Optional[float] = None
    avg_fill_price: float = 0.0
    exec_quantity: float = 0.0
    last_fill_price: float = 0.0
    remaining_quantity: float = 0.0
    order_class: str = Field(default="", alias="class")
    option_symbol: Optional[str] = None
    create_date: Optional[datetime] = None
    transaction_date: Optional[datetime] = None
    num_legs: Optional[int] = None
    leg: List["Order"] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG

    @field_validator("leg", mode="before")
    @classmethod
    def _one_or_many_legs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value


Order.model_rebuild()


class OrderPreview(BaseModel):
    status: str = ""
    result: bool = False
    symbol: str = ""
    side: str = ""
    type: str = ""
    duration: str = ""
    quantity: float = 0.0
    commission: float = 0.0
    cost: float = 0.0
    fees: float = 0.0
    order_cost: float = 0.0
    margin_change: float = 0.0
    extended_hours: bool = False
    order_class: str = Field(default="", alias="class")

    model_config = _API_MODEL_CONFIG


class Security(BaseModel):
    symbol: str = ""
    exchange: str = ""
    type: str = ""
    description: str = ""

    model_config = _API_MODEL_CONFIG


class Quote(BaseModel):
    symbol: str = ""
    description: str = ""
    exch: str = ""
    type: str = ""
    last: Optional[float] = None
    change: Optional[float] = None
    change_percentage: Optional[float] = None
    volume: Optional[int] = None
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    prevclose: Optional[float] = None
    bid: Optional[float] = None
    ask: Optional[float] = None
    bidsize: Optional[int] = None
    asksize: Optional[int] = None
    trade_date: Optional[DateTime] = None
    bid_date: Optional[DateTime] = None
    ask_date: Optional[DateTime] = None
    underlying: Optional[str] = None
    strike: Optional[float] = None
    option_type: Optional[str] = None
    expiration_date: Optional[DateTime] = None
    greeks: Optional[Dict[str, Any]] = None

    model_config = _API_MODEL_CONFIG


class TimeSale(BaseModel):
    """One bar from ``/markets/history`` (``date``) or ``/markets/timesales`` (``time``)."""

    time: Optional[DateTime] = None
    date: Optional[DateTime] = None
    timestamp: Optional[int] = None
    price: Optional[float] = None
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: int = 0
    vwap: Optional[float] = None

    model_config = _API_MODEL_CONFIG

    @property
    def at(self) -> Optional[DateTime]:
        return self.time or self.date


class MarketStatus(BaseModel):
    date: Optional[DateTime] = None
    description: str = ""
    state: str = ""
    timestamp: int = 0
    next_change: Optional[DateTime] = None
    next_state: str = ""

    model_config = _API_MODEL_CONFIG


class SessionHours(BaseModel):
    start: Optional[DateTime] = None
    end: Optional[DateTime] = None

    model_config = _API_MODEL_CONFIG


class MarketCalendar(BaseModel):
    date: Optional[DateTime] = None
    status: str = ""
    description: str = ""
    premarket: Optional[SessionHours] = None
    open: Optional[SessionHours] = None
    postmarket: Optional[SessionHours] = None

    model_config = _API_MODEL_CONFIG


class StreamSession(BaseModel):
    sessionid: str = ""
    url: str = ""

    model_config = _API_MODEL_CONFIG


__all__ = [
    "FaultDetail",
    "Fault",
    "FaultInfo",
    "RateLimit",
    "AccountBalances",
    "Position",
    "Event",
    "ClosedPosition",
    "Order",
    "OrderPreview",
    "Security",
    "Quote",
    "TimeSale",
    "MarketStatus",
    "SessionHours",
    "MarketCalendar",
    "StreamSession",
]
