"""Data schema definitions for donors, recipients and interest notifications

Field names are snake_case in Python and camelCase on the wire, so stored
buckets keep the shape the browser client reads.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BloodGroup(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class Organ(str, Enum):
    HEART = "Heart"
    EYE = "Eye"
    BONE_MARROW = "Bone Marrow"
    KIDNEY = "Kidney"
    LUNGS = "Lungs"
    LIVER = "Liver"
    PANCREAS = "Pancreas"


class Urgency(str, Enum):
    """Clinical priority, Critical highest"""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"


class RecipientStatus(str, Enum):
    SEARCHING = "Searching"
    POTENTIAL_MATCH_FOUND = "Potential Match Found"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    UNDISCLOSED = "Prefer not to say"


class CamelModel(BaseModel):
    """Base model serialising to camelCase JSON"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ═══════════════════════════════════════════════════════════════════
# Donors
# ═══════════════════════════════════════════════════════════════════

class DonorPledge(CamelModel):
    """Pledge form submitted by a prospective donor"""

    name: str = Field(..., min_length=1)
    contact: str = ""
    dob: str = ""
    gender: Gender = Gender.UNDISCLOSED
    blood_group: BloodGroup
    address: str = ""
    aadhar_url: str = ""  # identity document reference
    report_url: str = ""  # medical report reference
    pledged_organs: list[Organ] = Field(..., min_length=1)

    @field_validator("pledged_organs")
    @classmethod
    def _dedupe_organs(cls, organs: list[Organ]) -> list[Organ]:
        return list(dict.fromkeys(organs))


class Donor(DonorPledge):
    """Registered donor. Zero pledged organs means withdrawn."""

    id: str
    pledged_organs: list[Organ] = Field(default_factory=list)
    pledge_date: int  # epoch ms
    status: str = "Pledged"


# ═══════════════════════════════════════════════════════════════════
# Recipients
# ═══════════════════════════════════════════════════════════════════

class RecipientRegistration(CamelModel):
    """Waitlist registration submitted by a hospital"""

    name: str = Field(..., min_length=1)
    organ_needed: Organ
    blood_group: BloodGroup
    urgency: Urgency = Urgency.MEDIUM
    patient_id: Optional[str] = None
    hospital_id: Optional[str] = None
    clinical_notes: Optional[str] = None
    time_on_list: Optional[int] = None  # epoch ms; defaults to registration time


class Recipient(CamelModel):
    """Patient on the waitlist"""

    id: str
    patient_id: str
    name: str
    organ_needed: Organ
    blood_group: BloodGroup
    urgency: Urgency
    time_on_list: int  # epoch ms the patient joined the waitlist
    hospital_id: Optional[str] = None
    hospital_name: Optional[str] = None
    clinical_notes: Optional[str] = None
    status: RecipientStatus = RecipientStatus.SEARCHING


# ═══════════════════════════════════════════════════════════════════
# Derived / log entities
# ═══════════════════════════════════════════════════════════════════

class InterestNotification(CamelModel):
    id: str
    donor_id: str
    organ: Organ
    timestamp: int  # epoch ms


class MatchResult(CamelModel):
    """Ephemeral pairing produced by a matching run; never persisted"""

    recipient: Recipient
    donor: Donor

    @property
    def pair(self) -> tuple[str, str]:
        return self.recipient.id, self.donor.id


class Hospital(CamelModel):
    id: str
    mock_id: str
    name: str
    city: str
    contact: str
