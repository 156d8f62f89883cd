"""Seed a store with simulated waitlist recipients and optionally run a matching pass"""

import argparse
import random
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger
from src.config import get_settings
from src.matching.matching_engine import DonorReusePolicy, GreedyMatchingEngine
from src.state.app_state import AppState
from src.storage.local_store import LocalStore


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Add simulated recipients to the waitlist")
    parser.add_argument("--count", type=int, default=10, help="Number of recipients to add")
    parser.add_argument("--store", type=Path, default=settings.storage_dir, help="Storage directory")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument("--match", action="store_true", help="Run a matching pass afterwards")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in DonorReusePolicy],
        default=DonorReusePolicy.PER_ORGAN.value,
        help="Donor reuse policy for the matching pass",
    )
    args = parser.parse_args()

    state = AppState(LocalStore(args.store))
    rng = random.Random(args.seed)

    logger.info("=" * 60)
    logger.info(f"Seeding {args.count} simulated recipients into {args.store}")
    logger.info("=" * 60)

    for _ in range(args.count):
        recipient = state.add_mock_recipient(rng)
        logger.info(
            f"{recipient.patient_id}: {recipient.name} needs {recipient.organ_needed.value} "
            f"({recipient.blood_group.value}, {recipient.urgency.value}) at {recipient.hospital_name}"
        )

    if args.match:
        matches = state.run_matching(matcher=GreedyMatchingEngine(DonorReusePolicy(args.policy)))
        logger.info(f"\nMatching pass: {len(matches)} matches")
        for m in matches:
            logger.info(
                f"  {m.recipient.patient_id} ({m.recipient.blood_group.value}) <- "
                f"{m.donor.name} ({m.donor.blood_group.value}) for {m.recipient.organ_needed.value}"
            )


if __name__ == "__main__":
    main()
