"""Matching Engine - assign pledged donors to waitlisted recipients"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from src.data.schema import Donor, MatchResult, Organ, Recipient
from src.matching.compatibility import is_compatible
from src.matching.priority_scorer import Instant, rank_recipients, to_epoch_ms


class DonorReusePolicy(str, Enum):
    """How far a selected donor is removed from the candidate pool within one run"""
    PER_ORGAN = "per_organ"      # consumed for the matched organ type only
    ONE_PER_RUN = "one_per_run"  # consumed for every organ type


class MatchingStrategy(ABC):
    """Interface for donor-recipient assignment algorithms"""

    @abstractmethod
    def match(
        self,
        donors: Sequence[Donor],
        recipients: Sequence[Recipient],
        now: Optional[Instant] = None,
    ) -> list[MatchResult]:
        """Return pairings ordered by recipient priority. Inputs are not mutated."""


class GreedyMatchingEngine(MatchingStrategy):
    """
    Greedy single-pass matcher

    Recipients are visited in descending priority score; each takes the
    first still-available donor who pledged the needed organ and whose
    blood group is acceptable. No backtracking, so the result is not a
    maximum matching.
    """

    def __init__(self, policy: DonorReusePolicy = DonorReusePolicy.PER_ORGAN):
        self.policy = policy

    def match(
        self,
        donors: Sequence[Donor],
        recipients: Sequence[Recipient],
        now: Optional[Instant] = None,
    ) -> list[MatchResult]:
        reference = to_epoch_ms(now)

        active_donors = [d for d in donors if d.pledged_organs]
        if len(active_donors) != len(donors):
            logger.warning(
                f"Skipping {len(donors) - len(active_donors)} donors with no pledged organs"
            )

        # organ -> candidate donors in collection order
        organ_pool: dict[Organ, list[Donor]] = {}
        for donor in active_donors:
            for organ in donor.pledged_organs:
                organ_pool.setdefault(organ, []).append(donor)

        matches: list[MatchResult] = []

        for recipient, score in rank_recipients(recipients, reference):
            candidates = organ_pool.get(recipient.organ_needed, [])
            selected = next(
                (d for d in candidates if is_compatible(d.blood_group, recipient.blood_group)),
                None,
            )
            if selected is None:
                logger.debug(f"No compatible donor for recipient {recipient.id} (score={score})")
                continue

            matches.append(MatchResult(recipient=recipient, donor=selected))
            self._consume(organ_pool, selected, recipient.organ_needed)

        logger.info(
            f"Matching run: {len(matches)} matches for {len(recipients)} recipients "
            f"and {len(active_donors)} donors (policy={self.policy.value})"
        )
        return matches

    def _consume(self, organ_pool: dict[Organ, list[Donor]], donor: Donor, organ: Organ):
        organs = organ_pool.keys() if self.policy == DonorReusePolicy.ONE_PER_RUN else [organ]
        for key in organs:
            organ_pool[key] = [d for d in organ_pool[key] if d.id != donor.id]


def run_matching(
    donors: Sequence[Donor],
    recipients: Sequence[Recipient],
    now: Optional[Instant] = None,
    strategy: Optional[MatchingStrategy] = None,
) -> list[MatchResult]:
    """Run a matching pass with the given strategy (greedy by default)"""
    strategy = strategy if strategy is not None else GreedyMatchingEngine()
    return strategy.match(donors, recipients, now)


def match_pairs(matches: Sequence[MatchResult]) -> list[tuple[str, str]]:
    """(recipient_id, donor_id) pairs for a list of matches"""
    return [m.pair for m in matches]
