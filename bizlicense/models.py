"""
Typed data models for the requirement matching pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict


@dataclass(frozen=True)
class BusinessProfile:
    """Business attributes supplied by the user, one per request."""
    area_m2: float
    seats: float
    gas: bool
    serves_meat: bool
    deliveries: bool
    serves_food: Optional[bool] = None  # Derived during matching, never user supplied


class RequirementLevel(str, Enum):
    """Severity of a requirement, used for report grouping only."""
    MANDATORY = "mandatory"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"


@dataclass(frozen=True)
class Range:
    """Inclusive numeric bounds. A missing bound is unbounded on that side."""
    __pydantic_config__ = ConfigDict(extra="forbid", allow_inf_nan=False)

    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class ApplicabilityPredicate:
    """
    Conjunctive condition attached to a requirement.

    Every field that is set must hold for the requirement to apply; unset
    fields impose no constraint, so an empty predicate matches every profile.
    """
    __pydantic_config__ = ConfigDict(extra="forbid")

    area_m2: Optional[Range] = None
    seats: Optional[Range] = None
    gas: Optional[bool] = None
    serves_meat: Optional[bool] = None
    serves_food: Optional[bool] = None
    deliveries: Optional[bool] = None


@dataclass(frozen=True)
class RequirementRecord:
    """Regulatory requirement loaded from the catalog store."""
    id: str
    title: str
    level: RequirementLevel
    summary: str
    authority: str
    source_ref: str  # Originating document, used for citation only
    applies_if: ApplicabilityPredicate = ApplicabilityPredicate()


@dataclass
class ReportResult:
    """Compliance report for a single business."""
    report: str
    matched_requirements: List[RequirementRecord]
    profile: BusinessProfile
    generated_by: str  # "llm" or "template"
