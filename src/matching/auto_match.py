"""Interest-driven auto-match: pick one waitlisted recipient when a donor offers an organ"""

from typing import Optional, Sequence

from loguru import logger

from src.data.schema import Organ, Recipient, RecipientStatus
from src.matching.errors import InvalidInputError
from src.matching.priority_scorer import URGENCY_ORDER, parse_urgency


def parse_organ(value) -> Organ:
    try:
        return Organ(value)
    except ValueError:
        raise InvalidInputError(f"Unknown organ type: {value!r}") from None


def select_interest_candidate(organ: Organ, recipients: Sequence[Recipient]) -> Optional[Recipient]:
    """
    Top Searching recipient needing the organ

    Ordered by urgency (Critical first), then earliest waitlist join.
    """
    organ = parse_organ(organ)
    candidates = [
        r for r in recipients
        if r.organ_needed == organ and r.status == RecipientStatus.SEARCHING
    ]
    if not candidates:
        return None
    candidates.sort(key=lambda r: (URGENCY_ORDER[parse_urgency(r.urgency)], r.time_on_list))
    return candidates[0]


def auto_match_on_interest(organ: Organ, recipients: Sequence[Recipient], now=None) -> Optional[str]:
    """
    Id of the recipient whose status should flip to Potential Match Found

    Returns None when no Searching recipient needs the organ. `now` is
    accepted for interface symmetry with the scorer; ordering uses only
    urgency and join time.
    """
    organ = parse_organ(organ)
    candidate = select_interest_candidate(organ, recipients)
    if candidate is None:
        logger.info(f"No searching recipient needs {organ.value}; nothing to auto-match")
        return None
    logger.info(f"Auto-match: {organ.value} interest -> recipient {candidate.id} ({candidate.urgency.value})")
    return candidate.id
