"""
Colored, tagged console output shared by every candles_feeder module.
"""

from datetime import datetime, timezone

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

# ----------------------------------------------------------------------
# LEVEL TAGS
# ----------------------------------------------------------------------
INFO = Fore.GREEN + "[INFO]" + Style.RESET_ALL
WARNING = Fore.YELLOW + "[WARNING]" + Style.RESET_ALL
ERROR = Fore.RED + "[ERROR]" + Style.RESET_ALL
SUCCESS = Fore.GREEN + "[SUCCESS]" + Style.RESET_ALL
UPDATE = Fore.MAGENTA + "[UPDATE]" + Style.RESET_ALL
TRACE = Fore.CYAN + "[TRACE]" + Style.RESET_ALL

COLOR_SYMBOL = Fore.CYAN
COLOR_TIMESTAMPS = Fore.MAGENTA
COLOR_ROWS = Fore.RED
COLOR_VAR = Fore.CYAN
COLOR_TYPE = Fore.YELLOW
COLOR_DESC = Fore.MAGENTA

LABELS = {
    "INFO": INFO,
    "WARNING": WARNING,
    "ERROR": ERROR,
    "SUCCESS": SUCCESS,
    "UPDATE": UPDATE,
    "TRACE": TRACE,
}

# Toggled by the CLI / FeederConfig.verbose
_verbose = False


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = bool(enabled)


def log(level: str, message: str) -> None:
    print(f"{LABELS.get(level, INFO)} {message}", flush=True)


def log_info(message: str) -> None:
    log("INFO", message)


def log_warn(message: str) -> None:
    log("WARNING", message)


def log_error(message: str) -> None:
    log("ERROR", message)


def log_success(message: str) -> None:
    log("SUCCESS", message)


def log_update(message: str) -> None:
    log("UPDATE", message)


def log_trace(message: str) -> None:
    """Only printed in verbose mode."""
    if _verbose:
        log("TRACE", message)


# ----------------------------------------------------------------------
# INLINE COLOR HELPERS
# ----------------------------------------------------------------------
def c_symbol(x: object) -> str:
    return f"{COLOR_SYMBOL}{x}{Style.RESET_ALL}"


def c_rows(x: object) -> str:
    return f"{COLOR_ROWS}{x}{Style.RESET_ALL}"


def c_var(x: object) -> str:
    return f"{COLOR_VAR}{x}{Style.RESET_ALL}"


def c_desc(x: object) -> str:
    return f"{COLOR_DESC}{x}{Style.RESET_ALL}"


def fmt_ms(ms: int) -> str:
    """Human-readable UTC time for an epoch-millisecond value."""
    dt = datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc)
    return f"{COLOR_TIMESTAMPS}{dt.strftime('%Y-%m-%d %H:%M:%S')}{Style.RESET_ALL}"
