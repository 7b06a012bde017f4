"""
Ontology Layer — typed domain entities for the POP engine.

Frozen dataclasses for every value that flows through the pipeline:
points, sites, facilities, the requirements profile, and the results
(assignments, region clusters, scores, selection). Entities are built
fresh per optimization run from caller-supplied records; nothing here
holds state between runs.

Validation happens at construction time:
  - a missing/empty id raises MissingIdentifierError (ids are map keys)
  - enum fields accept their string values ("DataCenter", "mission-critical")
  - non-finite or out-of-range coordinates are kept but flagged invalid,
    so distance-based steps skip the record instead of defaulting to (0, 0)
"""

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pop_engine.config import clamp_threshold
from pop_engine.errors import InvalidRecordError, MissingIdentifierError


# ═══════════════════════════════════════════════════════════════════════════════
# POINTS
# ═══════════════════════════════════════════════════════════════════════════════

def _finite(value) -> bool:
    """Real, non-bool and finite; None and strings are not coordinates."""
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 latitude/longitude pair in degrees."""
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return (
            _finite(self.latitude)
            and _finite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )


@dataclass(frozen=True)
class PlanePoint:
    """A synthetic layout coordinate in the unit square (no real geography)."""
    x: float
    y: float

    @property
    def is_valid(self) -> bool:
        return _finite(self.x) and _finite(self.y)


Point = Union[GeoPoint, PlanePoint]


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

def _normalize_token(value) -> str:
    return "".join(ch for ch in str(value).lower() if ch.isalnum())


class _TokenEnum(str, Enum):
    """String enum that also matches values ignoring case, spaces and dashes."""

    @classmethod
    def _missing_(cls, value):
        token = _normalize_token(value)
        for member in cls:
            if _normalize_token(member.value) == token or _normalize_token(member.name) == token:
                return member
        return None


class SiteCategory(_TokenEnum):
    BRANCH = "Branch"
    CORPORATE = "Corporate"
    DATA_CENTER = "DataCenter"
    CLOUD = "Cloud"


class PrimaryGoal(_TokenEnum):
    COST_REDUCTION = "cost-reduction"
    PERFORMANCE = "performance"
    AGILITY = "agility"
    MODERNIZATION = "modernization"


class Budget(_TokenEnum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SUBSTANTIAL = "substantial"


class Redundancy(_TokenEnum):
    BASIC = "basic"
    HIGH = "high"
    MISSION_CRITICAL = "mission-critical"

    @property
    def wants_diversity(self) -> bool:
        return self in (Redundancy.HIGH, Redundancy.MISSION_CRITICAL)


class LatencySensitivity(_TokenEnum):
    NORMAL = "normal"
    LOW = "low"
    CRITICAL = "critical"

    @property
    def is_sensitive(self) -> bool:
        return self in (LatencySensitivity.LOW, LatencySensitivity.CRITICAL)


class SelectionReason(str, Enum):
    """Why the optimizer activated a facility (first reason wins)."""
    DEDICATED = "dedicated"
    BASE = "base"
    EXPANSION = "expansion"
    REDUNDANCY = "redundancy"


def _coerce_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidRecordError(
            f"Unknown {field_name} {value!r}; expected one of "
            f"{[m.value for m in enum_cls]}"
        ) from None


def _require_id(kind: str, value, record) -> str:
    if value is None:
        raise MissingIdentifierError(kind, record)
    if isinstance(value, float) and not math.isfinite(value):
        raise MissingIdentifierError(kind, record)
    text = str(value).strip()
    if not text:
        raise MissingIdentifierError(kind, record)
    return text


def _clean_code(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip().upper()
    return text or None


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT ENTITIES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Site:
    """A customer location that needs to connect through a facility."""
    id: str
    name: str = ""
    category: SiteCategory = SiteCategory.BRANCH
    location: Optional[Point] = None
    state: Optional[str] = None     # two-letter US state code
    metro: Optional[str] = None     # metro code assigned at ingestion

    def __post_init__(self):
        object.__setattr__(self, "id", _require_id("Site", self.id, self))
        object.__setattr__(self, "category", _coerce_enum(SiteCategory, self.category, "site category"))
        object.__setattr__(self, "state", _clean_code(self.state))
        object.__setattr__(self, "metro", _clean_code(self.metro))
        if not self.name:
            object.__setattr__(self, "name", self.id)

    @property
    def has_location(self) -> bool:
        return self.location is not None and self.location.is_valid

    @property
    def is_data_center(self) -> bool:
        return self.category == SiteCategory.DATA_CENTER


@dataclass(frozen=True)
class Facility:
    """A candidate interconnection point (POP)."""
    id: str
    name: str = ""
    location: Optional[Point] = None
    metro: Optional[str] = None
    tier: Optional[int] = None      # 1 = low-cost tier

    def __post_init__(self):
        object.__setattr__(self, "id", _require_id("Facility", self.id, self))
        object.__setattr__(self, "metro", _clean_code(self.metro))
        if not self.name:
            object.__setattr__(self, "name", self.id)

    @property
    def has_location(self) -> bool:
        return self.location is not None and self.location.is_valid


@dataclass(frozen=True)
class RequirementsProfile:
    """Caller-supplied optimization goals. Never mutated by the engine."""
    primary_goal: PrimaryGoal = PrimaryGoal.COST_REDUCTION
    budget: Budget = Budget.MODERATE
    redundancy: Redundancy = Redundancy.BASIC
    latency_sensitivity: LatencySensitivity = LatencySensitivity.NORMAL
    distance_threshold_miles: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "primary_goal", _coerce_enum(PrimaryGoal, self.primary_goal, "primary goal"))
        object.__setattr__(self, "budget", _coerce_enum(Budget, self.budget, "budget"))
        object.__setattr__(self, "redundancy", _coerce_enum(Redundancy, self.redundancy, "redundancy"))
        object.__setattr__(
            self, "latency_sensitivity",
            _coerce_enum(LatencySensitivity, self.latency_sensitivity, "latency sensitivity"),
        )

    @property
    def threshold_miles(self) -> float:
        """Distance threshold clamped into the valid range."""
        return clamp_threshold(self.distance_threshold_miles)

    @classmethod
    def from_dict(cls, d: dict) -> "RequirementsProfile":
        """Build from either camelCase (client payload) or snake_case keys."""
        def pick(snake, camel, default):
            if snake in d:
                return d[snake]
            return d.get(camel, default)

        return cls(
            primary_goal=pick("primary_goal", "primaryGoal", PrimaryGoal.COST_REDUCTION),
            budget=pick("budget", "budget", Budget.MODERATE),
            redundancy=pick("redundancy", "redundancy", Redundancy.BASIC),
            latency_sensitivity=pick("latency_sensitivity", "latencySensitivity", LatencySensitivity.NORMAL),
            distance_threshold_miles=pick("distance_threshold_miles", "distanceThresholdMiles", None),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT ENTITIES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Assignment:
    """Nearest-eligible facility for one site."""
    site_id: str
    facility_id: str
    distance_miles: float
    within_threshold: bool = True

    @property
    def extended_range(self) -> bool:
        """Over-threshold assignments are kept but displayed as extended range."""
        return not self.within_threshold


@dataclass(frozen=True)
class RegionCluster:
    """Sites of one display region, ordered west to east."""
    region_name: str
    site_ids: tuple
    average_longitude: Optional[float]
    region_key: str = ""    # base region from the static table


@dataclass(frozen=True)
class ScoreBreakdown:
    distance: float = 0.0
    cost: float = 0.0
    performance: float = 0.0
    redundancy: float = 0.0
    onramp: float = 0.0

    @property
    def total(self) -> float:
        return self.distance + self.cost + self.performance + self.redundancy + self.onramp

    def as_dict(self) -> dict:
        return {
            "distance": self.distance,
            "cost": self.cost,
            "performance": self.performance,
            "redundancy": self.redundancy,
            "onramp": self.onramp,
        }


@dataclass(frozen=True)
class FacilityScore:
    """Suitability of one facility for one site, 0-100, with its components."""
    site_id: str
    facility_id: str
    score: float
    distance_miles: float
    breakdown: ScoreBreakdown


@dataclass(frozen=True)
class SelectionResult:
    """Output of the coverage optimizer."""
    active_facility_ids: frozenset = frozenset()
    reasons: dict = field(default_factory=dict)         # facility_id -> SelectionReason
    uncovered_site_ids: tuple = ()
    passes: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.active_facility_ids
