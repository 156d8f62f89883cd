"""Application state container - single source of truth for donors, recipients and notifications

Views and API handlers receive an AppState instance explicitly and change
it only through the action methods below. Every action persists all three
buckets wholesale.
"""

import random
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from src.data.hospitals import get_hospital
from src.data.schema import (
    Donor,
    DonorPledge,
    InterestNotification,
    MatchResult,
    Organ,
    Recipient,
    RecipientRegistration,
    RecipientStatus,
    Urgency,
)
from src.matching.auto_match import auto_match_on_interest, parse_organ
from src.matching.errors import InvalidInputError, NotFoundError
from src.matching.matching_engine import GreedyMatchingEngine, MatchingStrategy
from src.matching.priority_scorer import now_ms, parse_urgency, rank_recipients
from src.state.simulation import mock_registration
from src.storage.local_store import DONORS, NOTIFICATIONS, RECIPIENTS, LocalStore


@dataclass
class InterestOutcome:
    notification: InterestNotification
    matched_recipient_id: Optional[str] = None


class AppState:
    """Owns the donor, recipient and notification collections"""

    def __init__(
        self,
        store: LocalStore,
        matcher: Optional[MatchingStrategy] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.matcher = matcher if matcher is not None else GreedyMatchingEngine()
        self.clock = clock
        self._write_lock = Lock()

        self.donors: list[Donor] = self._load(DONORS, Donor)
        self.recipients: list[Recipient] = self._load(RECIPIENTS, Recipient)
        self.notifications: list[InterestNotification] = self._load(NOTIFICATIONS, InterestNotification)

        withdrawn = [d.id for d in self.donors if not d.pledged_organs]
        if withdrawn:
            logger.warning(f"Dropping {len(withdrawn)} stored donors with no pledged organs")
            self.donors = [d for d in self.donors if d.pledged_organs]

        logger.info(
            f"AppState loaded from {store}: {len(self.donors)} donors, "
            f"{len(self.recipients)} recipients, {len(self.notifications)} notifications"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self, bucket: str, model):
        items = []
        for raw in self.store.read(bucket, []):
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed entry in '{bucket}': {e.error_count()} errors")
        return items

    def persist(self):
        # Routes run in a threadpool; bucket writes must not interleave
        with self._write_lock:
            self.store.write(DONORS, [d.to_json_dict() for d in self.donors])
            self.store.write(RECIPIENTS, [r.to_json_dict() for r in self.recipients])
            self.store.write(NOTIFICATIONS, [n.to_json_dict() for n in self.notifications])

    def _new_id(self, prefix: str, existing: set[str]) -> str:
        base = f"{prefix}{self.clock()}"
        candidate, n = base, 1
        while candidate in existing:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_donor(self, donor_id: str) -> Donor:
        for donor in self.donors:
            if donor.id == donor_id:
                return donor
        raise NotFoundError(f"Donor not found: {donor_id}")

    def get_recipient(self, recipient_id: str) -> Recipient:
        for recipient in self.recipients:
            if recipient.id == recipient_id:
                return recipient
        raise NotFoundError(f"Recipient not found: {recipient_id}")

    def find_recipient_by_patient_id(self, patient_id: str) -> Optional[Recipient]:
        wanted = patient_id.strip().upper()
        return next((r for r in self.recipients if r.patient_id.upper() == wanted), None)

    def hospital_requests(self, hospital_mock_id: str) -> list[Recipient]:
        return [r for r in self.recipients if r.hospital_id == hospital_mock_id]

    # ------------------------------------------------------------------
    # Donor actions
    # ------------------------------------------------------------------

    def add_donor(self, pledge: DonorPledge) -> Donor:
        donor = Donor(
            **pledge.model_dump(),
            id=self._new_id("d", {d.id for d in self.donors}),
            pledge_date=self.clock(),
        )
        self.donors.insert(0, donor)
        self.persist()
        logger.info(f"Donor {donor.id} pledged {[o.value for o in donor.pledged_organs]}")
        return donor

    def withdraw_pledge(self, donor_id: str, organ: Organ) -> Optional[Donor]:
        """
        Withdraw one pledged organ

        Returns:
            The updated donor, or None if the donor had no organs left and was removed
        """
        organ = parse_organ(organ)
        donor = self.get_donor(donor_id)
        if organ not in donor.pledged_organs:
            raise InvalidInputError(f"Donor {donor_id} has not pledged {organ.value}")

        remaining = [o for o in donor.pledged_organs if o != organ]
        updated = donor.model_copy(update={"pledged_organs": remaining})

        if remaining:
            self.donors = [updated if d.id == donor_id else d for d in self.donors]
            logger.info(f"Donor {donor_id} withdrew {organ.value}")
        else:
            self.donors = [d for d in self.donors if d.id != donor_id]
            updated = None
            logger.info(f"Donor {donor_id} withdrew last pledge and was removed")

        self.persist()
        return updated

    def express_interest(self, donor_id: str, organ: Organ) -> InterestOutcome:
        """
        Record a donor's willingness for one organ and auto-match a waiting recipient

        The notification is recorded whether or not a recipient is found.
        """
        organ = parse_organ(organ)
        donor = self.get_donor(donor_id)
        if organ not in donor.pledged_organs:
            raise InvalidInputError(f"Donor {donor_id} has not pledged {organ.value}")

        notification = InterestNotification(
            id=self._new_id("in", {n.id for n in self.notifications}),
            donor_id=donor.id,
            organ=organ,
            timestamp=self.clock(),
        )
        self.notifications.insert(0, notification)

        matched_id = auto_match_on_interest(organ, list(self.recipients))
        if matched_id is not None:
            self.recipients = [
                r.model_copy(update={"status": RecipientStatus.POTENTIAL_MATCH_FOUND})
                if r.id == matched_id else r
                for r in self.recipients
            ]

        self.persist()
        return InterestOutcome(notification=notification, matched_recipient_id=matched_id)

    def total_pledges(self) -> int:
        return sum(len(d.pledged_organs) for d in self.donors)

    def organ_demand(self) -> dict[Organ, int]:
        """Waitlist count per organ, organs without demand omitted"""
        counts: dict[Organ, int] = {}
        for r in self.recipients:
            counts[r.organ_needed] = counts.get(r.organ_needed, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Recipient / admin actions
    # ------------------------------------------------------------------

    def add_recipient(self, registration: RecipientRegistration) -> Recipient:
        hospital = get_hospital(registration.hospital_id)
        if registration.hospital_id and hospital is None:
            raise InvalidInputError(f"Unknown hospital: {registration.hospital_id}")

        now = self.clock()
        recipient = Recipient(
            id=self._new_id("r", {r.id for r in self.recipients}),
            patient_id=registration.patient_id or self._new_patient_id(),
            name=registration.name,
            organ_needed=registration.organ_needed,
            blood_group=registration.blood_group,
            urgency=registration.urgency,
            time_on_list=registration.time_on_list if registration.time_on_list is not None else now,
            hospital_id=hospital.mock_id if hospital else None,
            hospital_name=hospital.name if hospital else None,
            clinical_notes=registration.clinical_notes,
            status=RecipientStatus.SEARCHING,
        )
        self.recipients.insert(0, recipient)
        self.persist()
        logger.info(
            f"Recipient {recipient.id} ({recipient.patient_id}) waitlisted for "
            f"{recipient.organ_needed.value}, urgency={recipient.urgency.value}"
        )
        return recipient

    def _new_patient_id(self) -> str:
        taken = {r.patient_id for r in self.recipients}
        rng = random.Random()
        while True:
            candidate = f"NOD-{rng.randint(1000, 9999)}"
            if candidate not in taken:
                return candidate

    def add_mock_recipient(self, rng: Optional[random.Random] = None) -> Recipient:
        registration = mock_registration(rng, now=self.clock())
        if self.find_recipient_by_patient_id(registration.patient_id):
            registration.patient_id = None
        return self.add_recipient(registration)

    def update_recipient_urgency(self, recipient_id: str, urgency: Urgency) -> Recipient:
        urgency = parse_urgency(urgency)
        updated = self.get_recipient(recipient_id).model_copy(update={"urgency": urgency})
        self.recipients = [updated if r.id == recipient_id else r for r in self.recipients]
        self.persist()
        logger.info(f"Recipient {recipient_id} urgency set to {urgency.value}")
        return updated

    def delete_recipient(self, recipient_id: str):
        self.get_recipient(recipient_id)
        self.recipients = [r for r in self.recipients if r.id != recipient_id]
        self.persist()
        logger.info(f"Recipient {recipient_id} removed from waitlist")

    def clear_notification(self, notification_id: str):
        if not any(n.id == notification_id for n in self.notifications):
            raise NotFoundError(f"Notification not found: {notification_id}")
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        self.persist()

    # ------------------------------------------------------------------
    # Matching and reporting
    # ------------------------------------------------------------------

    def run_matching(self, now: Optional[int] = None, matcher: Optional[MatchingStrategy] = None) -> list[MatchResult]:
        """Informational matching pass over copies of current state; state is unchanged"""
        matcher = matcher if matcher is not None else self.matcher
        now = now if now is not None else self.clock()
        return matcher.match(list(self.donors), list(self.recipients), now)

    def organ_supply_demand(self) -> list[dict]:
        demand = self.organ_demand()
        supply: dict[Organ, int] = {}
        for donor in self.donors:
            for organ in donor.pledged_organs:
                supply[organ] = supply.get(organ, 0) + 1
        organs = list(dict.fromkeys([*demand.keys(), *supply.keys()]))
        return [
            {"organ": organ.value, "demand": demand.get(organ, 0), "supply": supply.get(organ, 0)}
            for organ in organs
        ]

    def dashboard(self, now: Optional[int] = None) -> dict:
        now = now if now is not None else self.clock()
        ranked = rank_recipients(self.recipients, now)
        return {
            "total_donors": len(self.donors),
            "total_recipients": len(self.recipients),
            "potential_matches": sum(
                1 for r in self.recipients if r.status == RecipientStatus.POTENTIAL_MATCH_FOUND
            ),
            "organ_supply_demand": self.organ_supply_demand(),
            "ranked_recipients": [
                {"recipient": r.to_json_dict(), "score": score} for r, score in ranked
            ],
        }

    def urgency_analysis(self, now: Optional[int] = None) -> dict:
        """
        Action brief for the highest-priority recipient

        Returns an empty dict when the waitlist is empty.
        """
        now = now if now is not None else self.clock()
        ranked = rank_recipients(self.recipients, now)
        if not ranked:
            return {}

        patient, score = ranked[0]
        organ = patient.organ_needed.value
        supply = next(
            (row["supply"] for row in self.organ_supply_demand() if row["organ"] == organ), 0
        )
        hospital = get_hospital(patient.hospital_id)
        city = hospital.city if hospital else None

        return {
            "recipient": patient.to_json_dict(),
            "score": score,
            "organ_supply": supply,
            "hospital_city": city,
            "action_plan": [
                f"Verify the status and location of pledged {organ} donors, starting "
                f"{patient.blood_group.value} blood group confirmation and preliminary HLA typing.",
                f"Alert the {patient.hospital_name or 'registering hospital'} transplant coordination team"
                f"{f' in {city}' if city else ''} to prepare Patient {patient.patient_id} for admission "
                f"and final cross-match testing.",
                "Plan priority logistics (potential Green Corridor) for retrieval and transport "
                "to minimise cold ischemic time.",
            ],
            "constraint_summary": (
                f"The registry shows {supply} {organ} pledged. The critical constraint is confirming "
                f"{patient.blood_group.value} compatibility and securing a positive cross-match for "
                f"Patient {patient.patient_id}."
            ),
        }

    def screening_report(self, notification_id: str) -> dict:
        """Initial contact draft and eligibility summary for the donor behind a notification"""
        notification = next((n for n in self.notifications if n.id == notification_id), None)
        if notification is None:
            raise NotFoundError(f"Notification not found: {notification_id}")
        donor = self.get_donor(notification.donor_id)

        region = donor.address.split(",")[-1].strip() or "N/A"
        organ = notification.organ.value
        return {
            "notification": notification.to_json_dict(),
            "donor": donor.to_json_dict(),
            "region": region,
            "contact_draft": (
                f"Dear {donor.name}, thank you for your compassionate interest in organ donation. "
                f"We appreciate your registration. An Organ Coordinator will contact you shortly "
                f"for the initial screening process."
            ),
            "eligibility_summary": (
                f"Blood group {donor.blood_group.value}. The pledged organ ({organ}) has "
                f"{self.organ_demand().get(notification.organ, 0)} patients waiting. "
                f"Region: {region}. Prioritise initial HLA typing."
            ),
        }

    @staticmethod
    def status_message(recipient: Optional[Recipient], patient_id: str) -> str:
        """Patient-facing waitlist status text"""
        if recipient is None:
            return f"Patient ID {patient_id} was not found in the registry. Please check the ID and try again."
        if recipient.status == RecipientStatus.POTENTIAL_MATCH_FOUND:
            return (
                f"Good news, {recipient.name}. A potential donor has expressed interest for the "
                f"requested {recipient.organ_needed.value}. Your hospital coordinator will be in "
                f"touch with you shortly for the next steps."
            )
        return (
            f"Hello {recipient.name}. We are actively searching for a compatible organ. "
            f"Your status is active on the national waitlist."
        )
