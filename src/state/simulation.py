"""Simulated waitlist registrations for demos"""

import random
from typing import Optional

from src.data.hospitals import HOSPITALS
from src.data.schema import BloodGroup, Organ, RecipientRegistration, Urgency
from src.matching.priority_scorer import MS_PER_DAY, now_ms


MOCK_NAMES = [
    "Aarav Sharma", "Vivaan Singh", "Aditya Kumar", "Vihaan Gupta", "Arjun Patel",
    "Sai Joshi", "Reyansh Reddy", "Ayaan Khan", "Krishna Verma", "Ishaan Ali",
    "Saanvi Sharma", "Aanya Singh", "Aadhya Gupta", "Ananya Kumar", "Pari Patel",
    "Diya Joshi", "Myra Reddy", "Aarohi Khan", "Anika Verma", "Riya Ali",
]

MOCK_NOTE = "Mock recipient added for simulation."
MAX_MOCK_WAIT_DAYS = 30


def mock_registration(rng: Optional[random.Random] = None, now: Optional[int] = None) -> RecipientRegistration:
    """Random registration at a random directory hospital, joined within the last 30 days"""
    rng = rng or random.Random()
    now = now if now is not None else now_ms()
    hospital = rng.choice(HOSPITALS)
    return RecipientRegistration(
        name=rng.choice(MOCK_NAMES),
        organ_needed=rng.choice(list(Organ)),
        blood_group=rng.choice(list(BloodGroup)),
        urgency=rng.choice(list(Urgency)),
        patient_id=f"NOD-{rng.randint(1000, 9999)}",
        hospital_id=hospital.mock_id,
        clinical_notes=MOCK_NOTE,
        time_on_list=now - rng.randrange(MAX_MOCK_WAIT_DAYS) * MS_PER_DAY,
    )
