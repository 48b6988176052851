from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar, Union

import requests
from loguru import logger

from tradier_client.core.exceptions import (
    DecodeError,
    NoAccountSelectedError,
    OrderRejectedError,
)
from tradier_client.core.models import (
    AccountBalances,
    ClosedPosition,
    Event,
    MarketCalendar,
    MarketStatus,
    Order,
    OrderPreview,
    Position,
    Quote,
    RateLimit,
    Security,
    StreamSession,
    TimeSale,
)
from tradier_client.core.timeutils import DATE_FORMAT, DateTime
from tradier_client.dal.normalize import collection, extract, normalize_payload
from tradier_client.dal.timesales import (
    Interval,
    TimeRange,
    decode_time_sales,
    fetch_with_split,
    time_sales_request,
)
from tradier_client.execution.orders import (
    STATUS_OK,
    OrderRequest,
    order_to_params,
    update_order_params,
)
from tradier_client.settings import get_api_settings
from tradier_client.utils.backoff import Backoff
from tradier_client.utils.http import FormData, RequestExecutor

T = TypeVar("T")


def _join(values: Union[str, Sequence[str], None]) -> str:
    if values is None:
        return ""
    if isinstance(values, str):
        return values
    return ",".join(values)


def _day(value: Union[date, datetime, str]) -> str:
    if isinstance(value, str):
        return value
    return value.strftime(DATE_FORMAT)


class TradierClient:
    """
    Brokerage REST client.

    Every call goes through one :class:`RequestExecutor`, which owns retries,
    quota waits and fault classification. Account-scoped calls need an
    account (constructor argument, ``TRADIER_ACCOUNT_ID`` or
    :meth:`select_account`) and fail with :class:`NoAccountSelectedError`
    before touching the network otherwise.

    Attributes:
        endpoint (str): REST base URL, without trailing slash.
        account (str | None): Selected account number.
        executor (RequestExecutor): Shared request executor.
        log: loguru-compatible logger.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        endpoint: str | None = None,
        account: str | None = None,
        retries: int | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        backoff_factory: Callable[[], Backoff] | None = None,
        log: Any = None,
    ) -> None:
        api = get_api_settings()
        self.endpoint = (endpoint or api.base_url).rstrip("/")
        self.account = account if account is not None else api.account_id
        self.log = log or logger
        self.executor = RequestExecutor(
            token,
            session=session,
            timeout=timeout,
            retries=retries,
            backoff_factory=backoff_factory,
            log=self.log,
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @property
    def retries(self) -> int:
        return self.executor.retries

    @property
    def last_rate_limit(self) -> RateLimit:
        """Rate-limit headers of the most recent response."""
        return self.executor.last_rate_limit

    def select_account(self, account: str | None) -> None:
        self.account = account

    def _account_url(self, suffix: str = "") -> str:
        if not self.account:
            raise NoAccountSelectedError()
        return f"{self.endpoint}/v1/accounts/{self.account}{suffix}"

    def _decode(self, resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(
                f"invalid JSON from {getattr(resp, 'url', '')}: {exc}"
            ) from exc

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._decode(self.executor.execute("GET", url, params=params))

    def _send_json(
        self,
        method: str,
        url: str,
        data: Optional[FormData] = None,
        *,
        retries: Optional[int] = None,
    ) -> Any:
        return self._decode(
            self.executor.execute(method, url, data=data, retries=retries)
        )

    def _single(self, payload: Any, model: Type[T], *path: str) -> T:
        value = extract(payload, *path)
        if value is None:
            raise DecodeError(f"response has no {'.'.join(path)}")
        items = normalize_payload(value, model)
        if len(items) != 1:
            raise DecodeError(
                f"expected one {'.'.join(path)}, got {len(items)}"
            )
        return items[0]

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def get_account_balances(self) -> AccountBalances:
        payload = self._get_json(self._account_url("/balances"))
        return self._single(payload, AccountBalances, "balances")

    def get_account_positions(self) -> List[Position]:
        payload = self._get_json(self._account_url("/positions"))
        return collection(payload, Position, "positions", "position")

    def get_account_history(self, limit: int | None = None) -> List[Event]:
        """
        Account activity, newest first.

        Args:
            limit (int | None): Maximum number of events to return.
        """
        url = self._account_url("/history")
        params = {"limit": str(limit)} if limit else None
        payload = self._get_json(url, params)
        return collection(payload, Event, "history", "event")

    def get_account_cost_basis(self) -> List[ClosedPosition]:
        payload = self._get_json(self._account_url("/gainloss"))
        return collection(payload, ClosedPosition, "gainloss", "closed_position")

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def get_open_orders(self) -> List[Order]:
        payload = self._get_json(self._account_url("/orders"))
        return collection(payload, Order, "orders", "order")

    def get_order_status(self, order_id: int) -> Order:
        payload = self._get_json(self._account_url(f"/orders/{order_id}"))
        return self._single(payload, Order, "order")

    def _order_ack(self, payload: Any, expected_id: Optional[int] = None) -> int:
        ack = extract(payload, "order")
        if not isinstance(ack, dict):
            raise DecodeError("response has no order acknowledgement")
        status = str(ack.get("status", ""))
        order_id = ack.get("id")
        if status != STATUS_OK:
            raise OrderRejectedError(
                f"order rejected with status {status!r}",
                order_id=order_id,
                status=status,
            )
        if order_id is None:
            raise DecodeError("order acknowledgement has no id")
        try:
            ack_id = int(order_id)
        except (TypeError, ValueError, OverflowError) as exc:
            raise DecodeError(f"order acknowledgement id {order_id!r} is not numeric") from exc
        if expected_id is not None and ack_id != expected_id:
            raise OrderRejectedError(
                f"acknowledged order {ack_id} does not match {expected_id}",
                order_id=ack_id,
                status=status,
            )
        return ack_id

    def place_order(self, order: OrderRequest) -> int:
        """
        Submit an order and return its id.

        Order creation is not idempotent, so the request is never retried.

        Raises:
            NoAccountSelectedError: no account selected.
            OrderValidationError: the order fails local validation.
            OrderRejectedError: the API acknowledged with a non-ok status.
        """
        url = self._account_url("/orders")
        params = order_to_params(order)
        payload = self._send_json("POST", url, params, retries=0)
        order_id = self._order_ack(payload)
        self.log.info(
            "Placed {} order {} for {}", order.order_class, order_id, order.symbol
        )
        return order_id

    def preview_order(self, order: OrderRequest) -> OrderPreview:
        url = self._account_url("/orders")
        params = order_to_params(order) + [("preview", "true")]
        payload = self._send_json("POST", url, params)
        preview = extract(payload, "order")
        if preview is None:
            raise DecodeError("response has no order preview")
        result = OrderPreview.model_validate(preview)
        if result.status != STATUS_OK:
            raise OrderRejectedError(
                f"order preview failed with status {result.status!r}",
                status=result.status,
            )
        return result

    def change_order(self, order_id: int, order: OrderRequest) -> int:
        url = self._account_url(f"/orders/{order_id}")
        params = update_order_params(order)
        payload = self._send_json("PUT", url, params)
        return self._order_ack(payload, expected_id=order_id)

    def cancel_order(self, order_id: int) -> int:
        url = self._account_url(f"/orders/{order_id}")
        payload = self._send_json("DELETE", url)
        return self._order_ack(payload, expected_id=order_id)

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def get_quotes(self, symbols: Union[str, Sequence[str]]) -> List[Quote]:
        """
        Quotes for equities and option symbols.

        Unknown symbols are dropped by the API, so the result may be shorter
        than ``symbols``.
        """
        payload = self._get_json(
            f"{self.endpoint}/v1/markets/quotes", {"symbols": _join(symbols)}
        )
        return collection(payload, Quote, "quotes", "quote")

    def lookup_securities(
        self,
        types: Union[str, Sequence[str], None] = None,
        exchanges: Union[str, Sequence[str], None] = None,
        query: str = "",
    ) -> List[Security]:
        params: Dict[str, str] = {}
        if types:
            params["types"] = _join(types)
        if exchanges:
            params["exchanges"] = _join(exchanges)
        if query:
            params["q"] = query
        payload = self._get_json(f"{self.endpoint}/v1/markets/lookup", params)
        return collection(payload, Security, "securities", "security")

    def get_easy_to_borrow(self) -> List[Security]:
        payload = self._get_json(f"{self.endpoint}/v1/markets/etb")
        return collection(payload, Security, "securities", "security")

    def get_option_expiration_dates(self, symbol: str) -> List[DateTime]:
        payload = self._get_json(
            f"{self.endpoint}/v1/markets/options/expirations", {"symbol": symbol}
        )
        return collection(payload, DateTime, "expirations", "date")

    def get_option_strikes(
        self, symbol: str, expiration: Union[date, datetime, str]
    ) -> List[float]:
        payload = self._get_json(
            f"{self.endpoint}/v1/markets/options/strikes",
            {"symbol": symbol, "expiration": _day(expiration)},
        )
        return collection(payload, float, "strikes", "strike")

    def get_option_chain(
        self,
        symbol: str,
        expiration: Union[date, datetime, str],
        greeks: bool = False,
    ) -> List[Quote]:
        params = {"symbol": symbol, "expiration": _day(expiration)}
        if greeks:
            params["greeks"] = "true"
        payload = self._get_json(f"{self.endpoint}/v1/markets/options/chains", params)
        return collection(payload, Quote, "options", "option")

    def get_time_sales(
        self,
        symbol: str,
        interval: Union[Interval, str] = Interval.MINUTE,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[TimeSale]:
        """
        Bars for ``symbol`` between ``start`` and ``end`` (either may be None).

        Daily and coarser intervals come from the history endpoint; intraday
        ones from timesales. Ranges too large for one response are split and
        fetched in halves, oldest first.

        Raises:
            InputError: ``start`` is after ``end``.
            ApiFault: the range is still too large at the split floor.
        """
        interval = Interval(interval)
        time_range = TimeRange(start, end)

        def fetch(rng: TimeRange) -> List[TimeSale]:
            url, params = time_sales_request(self.endpoint, symbol, interval, rng)
            return decode_time_sales(self._get_json(url, params), interval)

        return fetch_with_split(fetch, time_range, log=self.log)

    def get_market_calendar(
        self, year: int | None = None, month: int | None = None
    ) -> List[MarketCalendar]:
        params: Dict[str, str] = {}
        if year:
            params["year"] = str(year)
        if month:
            params["month"] = f"{month:02d}"
        payload = self._get_json(f"{self.endpoint}/v1/markets/calendar", params)
        return collection(payload, MarketCalendar, "calendar", "days", "day")

    def get_market_state(self) -> MarketStatus:
        payload = self._get_json(f"{self.endpoint}/v1/markets/clock")
        return self._single(payload, MarketStatus, "clock")

    def create_stream_session(self) -> StreamSession:
        payload = self._send_json(
            "POST", f"{self.endpoint}/v1/markets/events/session"
        )
        return self._single(payload, StreamSession, "stream")

    # ------------------------------------------------------------------
    # Fundamentals (beta)
    # ------------------------------------------------------------------

    def _fundamentals(
        self, kind: str, symbols: Union[str, Sequence[str]]
    ) -> List[Dict[str, Any]]:
        payload = self._get_json(
            f"{self.endpoint}/beta/markets/fundamentals/{kind}",
            {"symbols": _join(symbols)},
        )
        if payload in (None, "null", ""):
            return []
        return normalize_payload(payload, Dict[str, Any])

    def get_company_info(self, symbols: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
        return self._fundamentals("company", symbols)

    def get_corporate_calendars(
        self, symbols: Union[str, Sequence[str]]
    ) -> List[Dict[str, Any]]:
        return self._fundamentals("calendars", symbols)

    def get_corporate_actions(
        self, symbols: Union[str, Sequence[str]]
    ) -> List[Dict[str, Any]]:
        return self._fundamentals("corporate_actions", symbols)

    def get_dividends(self, symbols: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
        return self._fundamentals("dividends", symbols)

    def get_ratios(self, symbols: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
        return self._fundamentals("ratios", symbols)

    def get_financials(self, symbols: Union[str, Sequence[str]]) -> List[Dict[str, Any]]:
        return self._fundamentals("financials", symbols)

    def get_price_statistics(
        self, symbols: Union[str, Sequence[str]]
    ) -> List[Dict[str, Any]]:
        return self._fundamentals("statistics", symbols)


__all__ = ["TradierClient"]
