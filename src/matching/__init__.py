"""Matching engine modules"""

from src.matching.errors import InvalidInputError, NotFoundError
from src.matching.compatibility import is_compatible, compatible_donor_groups
from src.matching.priority_scorer import compute_score, rank_recipients
from src.matching.matching_engine import (
    DonorReusePolicy,
    GreedyMatchingEngine,
    MatchingStrategy,
    run_matching,
)
from src.matching.auto_match import auto_match_on_interest

__all__ = [
    "InvalidInputError",
    "NotFoundError",
    "is_compatible",
    "compatible_donor_groups",
    "compute_score",
    "rank_recipients",
    "DonorReusePolicy",
    "GreedyMatchingEngine",
    "MatchingStrategy",
    "run_matching",
    "auto_match_on_interest",
]
