"""Shared fixtures: entity factories and a fixed clock"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.data.schema import BloodGroup, Donor, Organ, Recipient, RecipientStatus, Urgency
from src.matching.priority_scorer import MS_PER_DAY


NOW = 1_760_000_000_000  # fixed epoch ms


class Clock:
    """Manually advanced millisecond clock"""

    def __init__(self, start: int = NOW):
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int = 1):
        self.value += ms


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def make_donor():
    counter = {"n": 0}

    def _make(blood_group="O-", organs=("Kidney",), donor_id=None, name=None):
        counter["n"] += 1
        n = counter["n"]
        return Donor(
            id=donor_id or f"d{n}",
            name=name or f"Donor {n}",
            blood_group=BloodGroup(blood_group),
            pledged_organs=[Organ(o) for o in organs],
            pledge_date=NOW,
        )

    return _make


@pytest.fixture
def make_recipient():
    counter = {"n": 0}

    def _make(
        blood_group="A+",
        organ="Kidney",
        urgency="Medium",
        days_ago=0,
        recipient_id=None,
        status=RecipientStatus.SEARCHING,
    ):
        counter["n"] += 1
        n = counter["n"]
        return Recipient(
            id=recipient_id or f"r{n}",
            patient_id=f"NOD-{1000 + n}",
            name=f"Patient {n}",
            organ_needed=Organ(organ),
            blood_group=BloodGroup(blood_group),
            urgency=Urgency(urgency),
            time_on_list=NOW - days_ago * MS_PER_DAY,
            status=status,
        )

    return _make
