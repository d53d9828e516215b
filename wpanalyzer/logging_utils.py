import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass
class _Throttle:
    count: int = 0
    last_emit: float = 0.0


_LOCK = threading.Lock()
_THROTTLES: Dict[Tuple[str, str], _Throttle] = {}


def log_suppressed(
    logger: logging.Logger,
    exc: BaseException,
    context: str,
    *,
    level: int = logging.DEBUG,
    sample: int = 5,
    cooldown: float = 120.0,
) -> int:
    """Log a soft failure, throttled per ``(logger, context)``.

    The first ``sample`` occurrences are always written; after that one line
    is written per ``cooldown`` seconds. Returns how often ``context`` has
    been reported so far, including the throttled ones.

    Resource probes and registry lookups fail the same way hundreds of times
    on a bad host, which is what this keeps out of the log.
    """
    now = time.monotonic()
    with _LOCK:
        state = _THROTTLES.setdefault((logger.name, context), _Throttle())
        state.count += 1
        count = state.count
        emit = count <= sample or (now - state.last_emit) >= cooldown
        if emit:
            state.last_emit = now
    if emit:
        logger.log(level, '%s err=%s (seen=%d)', context, exc, count)
    return count


def suppressed_counts() -> Dict[str, int]:
    """Snapshot of per-context counters, keyed ``logger:context``."""
    with _LOCK:
        return {f'{name}:{ctx}': st.count for (name, ctx), st in _THROTTLES.items()}


def reset_suppressed_state() -> None:
    with _LOCK:
        _THROTTLES.clear()
