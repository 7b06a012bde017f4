"""
Engine configuration.

Two kinds of settings live here:

  1. Fixed engine constants: Earth radius, plane dimensions, threshold
     bounds, scoring weights, the hub preference order and the regional
     bias table. These are not overridable at call time or through
     the environment.
  2. Deployment settings (EngineSettings): the default distance threshold
     when a profile omits one, the sample data directory and the log level.
     Read from POP_ENGINE_* environment variables.

Environment overrides:
    POP_ENGINE_DEFAULT_THRESHOLD_MILES - float (default: 1000)
    POP_ENGINE_DATA_DIR                - path  (default: <repo>/data)
    POP_ENGINE_LOG_LEVEL               - name  (default: INFO)
"""

import logging
import math
import os
import sys
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# 1. DISTANCE CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

# Single radius for every haversine call in the engine.
EARTH_RADIUS_MILES = 3959.0
KM_PER_MILE = 1.609344

# Unit square treated as a continental-US proxy in normalized-plane mode.
PLANE_WIDTH_MILES = 2800.0
PLANE_HEIGHT_MILES = 1600.0

# ── Distance threshold ───────────────────────────────────────────────────────
MIN_THRESHOLD_MILES = 500.0
MAX_THRESHOLD_MILES = 2500.0
DEFAULT_THRESHOLD_MILES = 1000.0

# Two facilities closer than this (after bias) are treated as equidistant.
TIE_EPSILON_MILES = 0.5


# ═══════════════════════════════════════════════════════════════════════════════
# 2. OPTIMIZER CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

# A redundancy facility must be farther than this from every active facility.
DIVERSITY_THRESHOLD_MILES = 1200.0

# DataCenter sites this close to a facility count as being in its metro.
ONRAMP_RADIUS_MILES = 50.0

# Minimum number of newly captured sites before expansion adds a facility.
MIN_CAPTURE_DEFAULT = 2
MIN_CAPTURE_PERFORMANCE = 1

# Tie-break order for base selection, by facility metro code. Metros not
# listed rank after these, then by facility id.
HUB_PREFERENCE = ("DFW", "CHI", "NYC", "RES", "SJC", "LAX", "MIA", "HOU", "SEA", "ATL", "DEN")

# Multiplier applied to a facility's distance, keyed by the site's base region
# and then by facility metro. >1 discourages a facility for sites in that
# region, <1 favours it.
REGION_BIAS = {
    "California": {"LAX": 1.10},
    "Pacific Northwest": {"SJC": 1.05},
    "Texas": {"HOU": 1.05},
}


# ═══════════════════════════════════════════════════════════════════════════════
# 3. SCORING CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════════

MAX_MEANINGFUL_DISTANCE_MILES = 2500.0
DISTANCE_WEIGHT = 40.0
COST_BONUS_LOW_COST = 20.0
COST_BONUS_STANDARD = 10.0
PERFORMANCE_BONUS = 25.0
PERFORMANCE_NEAR_MILES = 800.0
REDUNDANCY_BONUS = 15.0
REDUNDANCY_NEARBY_MILES = 1200.0
ONRAMP_BONUS = 30.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0


# ═══════════════════════════════════════════════════════════════════════════════
# 4. DEPLOYMENT SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """Return the environment value for key (converted by type_fn) or default."""
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _default_data_dir() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")


@dataclass(frozen=True)
class EngineSettings:
    """Deployment-level settings (not algorithm constants)."""

    default_threshold_miles: float = DEFAULT_THRESHOLD_MILES
    data_dir: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            default_threshold_miles=_env_or_default(
                "POP_ENGINE_DEFAULT_THRESHOLD_MILES", DEFAULT_THRESHOLD_MILES, float
            ),
            data_dir=_env_or_default("POP_ENGINE_DATA_DIR", _default_data_dir()),
            log_level=_env_or_default("POP_ENGINE_LOG_LEVEL", "INFO").upper(),
        )


def clamp_threshold(value: Optional[float], settings: Optional[EngineSettings] = None) -> float:
    """Clamp a distance threshold into [MIN_THRESHOLD_MILES, MAX_THRESHOLD_MILES].

    Numeric strings are accepted. None, NaN, infinities and anything that
    is not a number fall back to the configured default first.
    """
    try:
        value = float(value) if value is not None else None
    except (TypeError, ValueError):
        logger.warning("Distance threshold %r is not a number; using the default", value)
        value = None
    if value is None or not math.isfinite(value):
        settings = settings or EngineSettings.from_env()
        fallback = settings.default_threshold_miles
        if not math.isfinite(fallback):
            fallback = DEFAULT_THRESHOLD_MILES
        logger.debug("No usable distance threshold (%r); using %.1f", value, fallback)
        value = float(fallback)
    clamped = min(MAX_THRESHOLD_MILES, max(MIN_THRESHOLD_MILES, value))
    if clamped != value:
        logger.warning("Distance threshold %.1f clamped to %.1f miles", value, clamped)
    return clamped


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a single stdout handler to the package logger.

    Clears existing handlers first so repeated calls (Streamlit reruns)
    don't duplicate output.
    """
    level = (level or EngineSettings.from_env().log_level).upper()

    pkg_logger = logging.getLogger("pop_engine")
    pkg_logger.setLevel(level)
    pkg_logger.handlers.clear()

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    pkg_logger.addHandler(ch)
    return pkg_logger
