from dataclasses import replace
from typing import Iterable, List, Optional

from bizlicense.models import ApplicabilityPredicate, BusinessProfile, Range, RequirementRecord

BOOLEAN_FIELDS = ("gas", "serves_meat", "serves_food", "deliveries")
RANGE_FIELDS = ("area_m2", "seats")


def derive_effective_profile(profile: BusinessProfile) -> BusinessProfile:
    """
    Apply the derivation rule: a business that serves meat serves food.

    Args:
        profile (BusinessProfile): Profile as supplied by the caller.

    Returns:
        BusinessProfile: A copy with `serves_food` resolved to a bool. The
                         caller's profile is left untouched.
    """
    return replace(profile, serves_food=bool(profile.serves_food) or bool(profile.serves_meat))


def range_allows(bounds: Optional[Range], value: float) -> bool:
    """Inclusive bounds check; missing bounds do not constrain."""
    if bounds is None:
        return True
    if bounds.min is not None and value < bounds.min:
        return False
    if bounds.max is not None and value > bounds.max:
        return False
    return True


def predicate_holds(predicate: ApplicabilityPredicate, profile: BusinessProfile) -> bool:
    """
    Evaluate an applicability predicate against an already derived profile.

    All clauses that are set must hold. Boolean clauses are equality tests,
    so `gas: false` excludes businesses that use gas.

    Args:
        predicate (ApplicabilityPredicate): Condition from a catalog record.
        profile (BusinessProfile): Profile after derivation.

    Returns:
        bool: True if the requirement applies.
    """
    for name in RANGE_FIELDS:
        if not range_allows(getattr(predicate, name), getattr(profile, name)):
            return False

    for name in BOOLEAN_FIELDS:
        expected = getattr(predicate, name)
        if expected is not None and getattr(profile, name) != expected:
            return False

    return True


def match_requirements(
    profile: BusinessProfile,
    catalog: Iterable[RequirementRecord],
) -> List[RequirementRecord]:
    """
    Select the catalog records that apply to a business.

    Pure and deterministic: the result is the subsequence of the catalog, in
    catalog order, whose predicate holds for the derived profile.

    Args:
        profile (BusinessProfile): Validated business profile.
        catalog (Iterable[RequirementRecord]): Loaded catalog.

    Returns:
        List[RequirementRecord]: Matching records in catalog order.
    """
    effective = derive_effective_profile(profile)
    return [record for record in catalog if predicate_holds(record.applies_if, effective)]
