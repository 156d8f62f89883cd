"""ABO/Rh compatibility table for organ donation

The table is keyed by *recipient* blood group and lists the donor groups
that may donate to it.
"""

from typing import Union

from src.data.schema import BloodGroup
from src.matching.errors import InvalidInputError


BG = BloodGroup

# recipient group -> acceptable donor groups
COMPATIBILITY: dict[BloodGroup, frozenset[BloodGroup]] = {
    BG.A_POS: frozenset({BG.A_POS, BG.A_NEG, BG.O_POS, BG.O_NEG}),
    BG.A_NEG: frozenset({BG.A_NEG, BG.O_NEG}),
    BG.B_POS: frozenset({BG.B_POS, BG.B_NEG, BG.O_POS, BG.O_NEG}),
    BG.B_NEG: frozenset({BG.B_NEG, BG.O_NEG}),
    BG.AB_POS: frozenset(BloodGroup),  # universal recipient
    BG.AB_NEG: frozenset({BG.A_NEG, BG.B_NEG, BG.AB_NEG, BG.O_NEG}),
    BG.O_POS: frozenset({BG.O_POS, BG.O_NEG}),
    BG.O_NEG: frozenset({BG.O_NEG}),
}


def parse_blood_group(value: Union[str, BloodGroup]) -> BloodGroup:
    """Coerce a raw string to BloodGroup, raising InvalidInputError if malformed"""
    try:
        return BloodGroup(value)
    except ValueError:
        raise InvalidInputError(f"Unknown blood group: {value!r}") from None


def is_compatible(donor_group, recipient_group) -> bool:
    """
    Check whether a donor blood group may donate to a recipient blood group

    Args:
        donor_group: Donor's blood group (e.g. 'O-')
        recipient_group: Recipient's blood group (e.g. 'A+')

    Returns:
        True if the donor group is in the recipient's acceptable set.
        A recipient group not in the table yields False.

    Raises:
        InvalidInputError: If the donor group is malformed
    """
    donor = parse_blood_group(donor_group)
    try:
        acceptable = COMPATIBILITY[BloodGroup(recipient_group)]
    except ValueError:
        return False
    return donor in acceptable


def compatible_donor_groups(recipient_group) -> frozenset[BloodGroup]:
    """Donor groups acceptable for a recipient group"""
    return COMPATIBILITY[parse_blood_group(recipient_group)]


def compatible_recipient_groups(donor_group) -> frozenset[BloodGroup]:
    """Recipient groups a donor group can supply"""
    donor = parse_blood_group(donor_group)
    return frozenset(r for r, donors in COMPATIBILITY.items() if donor in donors)
