"""Priority Scorer - rank waitlisted recipients by urgency and time waiting"""

import time
from datetime import datetime
from typing import Iterable, Optional, Union

from src.data.schema import Recipient, Urgency
from src.matching.errors import InvalidInputError


MS_PER_DAY = 1000 * 60 * 60 * 24

URGENCY_BASE: dict[Urgency, int] = {
    Urgency.CRITICAL: 150,
    Urgency.HIGH: 100,
    Urgency.MEDIUM: 50,
}

# Lower value = served first
URGENCY_ORDER: dict[Urgency, int] = {
    Urgency.CRITICAL: 0,
    Urgency.HIGH: 1,
    Urgency.MEDIUM: 2,
}

Instant = Union[int, float, datetime]


def now_ms() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


def to_epoch_ms(instant: Optional[Instant]) -> int:
    """Normalise a datetime / epoch-ms value (None = now) to epoch milliseconds"""
    if instant is None:
        return now_ms()
    if isinstance(instant, datetime):
        return int(instant.timestamp() * 1000)
    return int(instant)


def parse_urgency(value: Union[str, Urgency]) -> Urgency:
    try:
        return Urgency(value)
    except ValueError:
        raise InvalidInputError(f"Unknown urgency level: {value!r}") from None


def urgency_base(urgency: Union[str, Urgency]) -> int:
    return URGENCY_BASE[parse_urgency(urgency)]


def days_waiting(joined_at: int, now: Optional[Instant] = None) -> int:
    """Whole days elapsed since joining the waitlist, never negative"""
    elapsed = to_epoch_ms(now) - int(joined_at)
    if elapsed <= 0:
        return 0
    return elapsed // MS_PER_DAY


def compute_score(recipient: Recipient, now: Optional[Instant] = None) -> int:
    """
    Priority score for a recipient: urgency base + whole days waiting

    Critical=150, High=100, Medium=50. Higher means served earlier.

    Raises:
        InvalidInputError: If the recipient's urgency is not a known level
    """
    return urgency_base(recipient.urgency) + days_waiting(recipient.time_on_list, now)


def rank_recipients(
    recipients: Iterable[Recipient],
    now: Optional[Instant] = None,
) -> list[tuple[Recipient, int]]:
    """
    Score and sort recipients, highest priority first

    The sort is stable, so equal scores keep their collection order.
    """
    reference = to_epoch_ms(now)
    scored = [(r, compute_score(r, reference)) for r in recipients]
    scored.sort(key=lambda x: x[1], reverse=True)
    return scored
