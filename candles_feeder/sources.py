"""
Exchange-facing collaborators: the candle source and the symbol catalog.

Both are small interfaces so the scheduler can be driven by anything that
returns kline rows; the Binance REST implementations below are the default.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from .errors import CatalogUnavailable, FetchError
from .logs import log_trace, c_rows, c_var
from .models import Instrument, RawCandle

BINANCE_API_URL = "https://api.binance.com"
KLINES_PATH = "/api/v3/klines"
EXCHANGE_INFO_PATH = "/api/v3/exchangeInfo"

USER_AGENT = "CandlesFeeder/0.1"
HEADERS = {"User-Agent": USER_AGENT}

HTTP_TIMEOUT_SECONDS = 10
KLINES_LIMIT = 1000  # exchange maximum per request


class CandleSource(ABC):

    @abstractmethod
    def fetch_candles(
        self,
        pair: str,
        interval: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
        limit: int = KLINES_LIMIT,
    ) -> List[RawCandle]:
        """
        Fetch candles for `pair` in ascending open-time order.
        `end_ms` is inclusive; omit it to read up to the present.
        Must raise FetchError on transport / HTTP failure.
        """
        raise NotImplementedError


class SymbolCatalog(ABC):

    @abstractmethod
    def list_instruments(self) -> List[Instrument]:
        """
        All instruments listed by the exchange.
        Must raise CatalogUnavailable if the listing cannot be retrieved.
        """
        raise NotImplementedError


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _kline_to_raw(k: Any) -> RawCandle:
    """
    Binance kline rows:
      [openTime, open, high, low, close, volume, closeTime, quoteVolume,
       trades, takerBuyBase, takerBuyQuote, ignore]
    Short or odd rows come back with empty fields so the normalizer drops them.
    """
    if not isinstance(k, (list, tuple)) or len(k) < 6:
        return RawCandle(0, "", "", "", "", "")
    try:
        open_time = int(k[0])
    except (TypeError, ValueError):
        open_time = 0
    return RawCandle(open_time, _text(k[1]), _text(k[2]), _text(k[3]), _text(k[4]), _text(k[5]))


class BinanceCandleSource(CandleSource):

    def __init__(
        self,
        api_url: str = BINANCE_API_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_candles(
        self,
        pair: str,
        interval: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
        limit: int = KLINES_LIMIT,
    ) -> List[RawCandle]:
        params: Dict[str, Any] = {"symbol": pair, "interval": interval, "limit": int(limit)}
        if start_ms is not None:
            params["startTime"] = int(start_ms)
        if end_ms is not None:
            params["endTime"] = int(end_ms)

        log_trace(f"GET {c_var(KLINES_PATH)} {params}")
        try:
            resp = self.session.get(
                self.api_url + KLINES_PATH, params=params, headers=HEADERS, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise FetchError(f"{pair}: network error: {exc}") from exc

        if resp.status_code != 200:
            raise FetchError(f"{pair}: HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchError(f"{pair}: failed to decode JSON response: {exc}") from exc
        if not isinstance(data, list):
            raise FetchError(f"{pair}: unexpected klines payload: {str(data)[:200]}")

        log_trace(f"{c_var(pair)} returned {c_rows(len(data))} klines")
        return [_kline_to_raw(k) for k in data]


class BinanceSymbolCatalog(SymbolCatalog):

    def __init__(
        self,
        api_url: str = BINANCE_API_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def list_instruments(self) -> List[Instrument]:
        try:
            resp = self.session.get(self.api_url + EXCHANGE_INFO_PATH, headers=HEADERS, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise CatalogUnavailable(f"Binance {EXCHANGE_INFO_PATH} API error: {exc}") from exc

        symbols = payload.get("symbols") if isinstance(payload, dict) else None
        if not isinstance(symbols, list):
            raise CatalogUnavailable(f"Binance {EXCHANGE_INFO_PATH} returned no symbol list")

        return [
            Instrument(
                symbol=_text(info.get("symbol")),
                base_asset=_text(info.get("baseAsset")),
                quote_asset=_text(info.get("quoteAsset")),
                status=_text(info.get("status")),
            )
            for info in symbols
            if isinstance(info, dict)
        ]
