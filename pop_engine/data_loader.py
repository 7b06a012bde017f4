"""
Load site and facility records into engine entities.

Accepts plain records (dicts), pandas DataFrames, or the two CSV files in
data/ (sites.csv, facilities.csv). Coordinates that are missing, blank,
non-numeric or non-finite become "no location" rather than (0, 0); those
site ids are collected in skipped_site_ids. A record without an id raises
MissingIdentifierError.

Recognized columns:
  sites:      id, name, category, latitude|lat, longitude|lon|lng, x, y,
              state, metro
  facilities: id, name, latitude|lat, longitude|lon|lng, x, y, metro, tier
"""

import logging
import math
import os

import pandas as pd

from pop_engine.config import EngineSettings
from pop_engine.ontology import Facility, GeoPoint, PlanePoint, Site, SiteCategory

logger = logging.getLogger(__name__)

_LAT_KEYS = ("latitude", "lat")
_LON_KEYS = ("longitude", "lon", "lng")


def _number(value):
    """float(value), or None for blanks, NaN and unparseable text."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _first(record: dict, keys):
    for key in keys:
        if key in record:
            return record[key]
    return None


def _text(value):
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def _location(record: dict):
    lat = _number(_first(record, _LAT_KEYS))
    lon = _number(_first(record, _LON_KEYS))
    if lat is not None and lon is not None:
        point = GeoPoint(lat, lon)
        return point if point.is_valid else None
    x, y = _number(record.get("x")), _number(record.get("y"))
    if x is not None and y is not None:
        return PlanePoint(x, y)
    return None


def _record_id(record: dict):
    value = record.get("id")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _text(value)


def site_from_record(record: dict) -> Site:
    return Site(
        id=_record_id(record),
        name=_text(record.get("name")) or "",
        category=_text(record.get("category")) or SiteCategory.BRANCH,
        location=_location(record),
        state=_text(record.get("state")),
        metro=_text(record.get("metro")),
    )


def facility_from_record(record: dict) -> Facility:
    tier = _number(record.get("tier"))
    return Facility(
        id=_record_id(record),
        name=_text(record.get("name")) or "",
        location=_location(record),
        metro=_text(record.get("metro")),
        tier=int(tier) if tier is not None else None,
    )


class NetworkData:
    """Sites and candidate facilities for one optimization run."""

    def __init__(self, sites, facilities):
        self.sites = list(sites)
        self.facilities = list(facilities)
        self.skipped_site_ids = [s.id for s in self.sites if not s.has_location]
        if self.skipped_site_ids:
            logger.warning("%d site(s) have no usable coordinates: %s",
                           len(self.skipped_site_ids), self.skipped_site_ids)

        self._site_names = {s.id: s.name for s in self.sites}
        self._facility_names = {f.id: f.name for f in self.facilities}

    # ── Constructors ─────────────────────────────────────────────────────────

    @classmethod
    def from_records(cls, site_records, facility_records) -> "NetworkData":
        return cls(
            [site_from_record(r) for r in site_records],
            [facility_from_record(r) for r in facility_records],
        )

    @classmethod
    def from_frames(cls, sites_df: pd.DataFrame, facilities_df: pd.DataFrame) -> "NetworkData":
        return cls.from_records(
            sites_df.to_dict("records"),
            facilities_df.to_dict("records"),
        )

    @classmethod
    def from_csv(cls, data_dir=None) -> "NetworkData":
        """Load data_dir/sites.csv and data_dir/facilities.csv."""
        if data_dir is None:
            data_dir = EngineSettings.from_env().data_dir
        text_cols = {"id": str, "state": str, "metro": str}
        sites_df = pd.read_csv(os.path.join(data_dir, "sites.csv"), dtype=text_cols)
        facilities_df = pd.read_csv(os.path.join(data_dir, "facilities.csv"), dtype={"id": str, "metro": str})
        logger.info("Loaded %d sites and %d facilities from %s",
                    len(sites_df), len(facilities_df), data_dir)
        return cls.from_frames(sites_df, facilities_df)

    # ── Lookups ──────────────────────────────────────────────────────────────

    def site_name(self, site_id):
        return self._site_names.get(site_id, site_id)

    def facility_name(self, facility_id):
        return self._facility_names.get(facility_id, facility_id)

    def sites_frame(self) -> pd.DataFrame:
        """One row per site with flattened coordinates (for display)."""
        rows = []
        for s in self.sites:
            lat = s.location.latitude if isinstance(s.location, GeoPoint) else None
            lon = s.location.longitude if isinstance(s.location, GeoPoint) else None
            rows.append({
                "id": s.id, "name": s.name, "category": s.category.value,
                "state": s.state, "metro": s.metro, "latitude": lat, "longitude": lon,
            })
        return pd.DataFrame(rows, columns=["id", "name", "category", "state", "metro", "latitude", "longitude"])
