from typing import List, Optional

from .config import FeederConfig
from .errors import CatalogUnavailable, FetchError
from .logs import log_error, log_info, log_warn, c_desc, c_rows, c_symbol
from .sources import CandleSource, SymbolCatalog

# Used when exchange metadata cannot be fetched at startup
FALLBACK_SYMBOLS = [
    "EOS", "TRX", "ONT", "XRP", "ADA", "LTC", "BCC",
    "TUSD", "IOTA", "ETC", "ICX", "NEO", "XLM", "QTUM",
]

TRADING_STATUS = "TRADING"
VALIDATION_INTERVAL = "1m"


def trading_symbols(catalog: SymbolCatalog, quote_asset: str) -> List[str]:
    """
    Base assets quoted in `quote_asset` whose listing is trading.
    A base asset seen twice keeps the status of its first listing.
    """
    first_status = {}
    for info in catalog.list_instruments():
        if info.quote_asset != quote_asset:
            continue
        if info.base_asset not in first_status:
            first_status[info.base_asset] = info.status
    return [base for base, status in first_status.items() if status == TRADING_STATUS]


def validate_symbols(source: CandleSource, symbols: List[str], quote_asset: str) -> List[str]:
    """Keep only symbols for which one trial fetch succeeds."""
    valid = []
    for symbol in symbols:
        try:
            source.fetch_candles(symbol + quote_asset, VALIDATION_INTERVAL, limit=1)
        except FetchError as exc:
            log_warn(f"Dropping {c_symbol(symbol)}: validation fetch failed ({c_desc(exc)})")
            continue
        valid.append(symbol)
    return valid


def resolve_symbols(
    config: FeederConfig,
    catalog: Optional[SymbolCatalog],
    source: CandleSource,
) -> List[str]:
    """
    Configured symbols are used verbatim. Otherwise discover them from the
    catalog (or the fallback list) and validate each one.
    """
    if config.symbols:
        return list(config.symbols)

    quote = config.base_currency
    if catalog is None:
        candidates = list(FALLBACK_SYMBOLS)
    else:
        try:
            candidates = trading_symbols(catalog, quote)
        except CatalogUnavailable as exc:
            log_error(f"{c_desc(exc)}. Falling back to the fixed symbol list")
            candidates = list(FALLBACK_SYMBOLS)

    symbols = validate_symbols(source, candidates, quote)
    log_info(f"Resolved {c_rows(len(symbols))} symbols quoted in {c_symbol(quote)}")
    return symbols
