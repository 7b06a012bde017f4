"""
Sample Network Data Generator
=============================
Generates a synthetic customer footprint for the POP engine demo: sites
scattered around US metros plus the candidate facility catalog from
pop_engine.coords.

Each site is placed with Gaussian jitter (~25 miles) around a metro centre.
Roughly one site in ten is a DataCenter, which makes it a candidate for a
dedicated onramp; a small share has no coordinates at all so the skipped-
site path shows up in the app.

Produces data/generated/sites.csv and data/generated/facilities.csv; point
POP_ENGINE_DATA_DIR there to run the app on it. The hand-curated data/*.csv
that the tests use are left alone.

Usage (after `pip install -e .`, so pop_engine is importable):
    python scripts/generate_data.py [n_sites]
"""

import logging
import os
import sys

import numpy as np
import pandas as pd

from pop_engine.config import setup_logging
from pop_engine.coords import METRO_COORDS, TIER1_METROS

# ── Reproducibility ──────────────────────────────────────────────────────────
SEED = 42
rng = np.random.default_rng(SEED)

OUTPUT_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "generated")

logger = logging.getLogger("pop_engine.scripts.generate_data")

# Site metros: (metro code or None, state, lat, lon, weight). Metro code is
# only set where a facility exists in that metro.
SITE_METROS = [
    ("SEA", "WA", 47.61, -122.33, 3),
    (None, "OR", 45.52, -122.68, 2),
    ("SJC", "CA", 37.34, -121.89, 4),
    ("LAX", "CA", 34.05, -118.24, 4),
    (None, "CA", 32.72, -117.16, 2),
    ("PHX", "AZ", 33.45, -112.07, 2),
    ("DEN", "CO", 39.74, -104.99, 2),
    ("DFW", "TX", 32.78, -96.80, 4),
    ("HOU", "TX", 29.76, -95.37, 3),
    (None, "TX", 30.27, -97.74, 2),
    ("CHI", "IL", 41.88, -87.63, 4),
    (None, "OH", 39.96, -83.00, 2),
    (None, "MN", 44.98, -93.27, 2),
    ("ATL", "GA", 33.75, -84.39, 3),
    ("MIA", "FL", 25.76, -80.19, 2),
    ("RES", "VA", 38.96, -77.36, 3),
    ("NYC", "NY", 40.71, -74.01, 4),
    (None, "MA", 42.36, -71.06, 2),
]

CATEGORIES = ["Branch", "Corporate", "DataCenter", "Cloud"]
CATEGORY_WEIGHTS = [0.70, 0.15, 0.10, 0.05]

JITTER_DEG = 0.35      # ~25 miles
MISSING_COORD_SHARE = 0.03


def generate_sites(n_sites: int) -> pd.DataFrame:
    weights = np.array([m[4] for m in SITE_METROS], dtype=float)
    weights /= weights.sum()
    metro_idx = rng.choice(len(SITE_METROS), size=n_sites, p=weights)
    categories = rng.choice(CATEGORIES, size=n_sites, p=CATEGORY_WEIGHTS)

    rows = []
    for i, (m, category) in enumerate(zip(metro_idx, categories), start=1):
        metro, state, lat, lon, _ = SITE_METROS[m]
        if rng.random() < MISSING_COORD_SHARE:
            site_lat, site_lon = None, None
        else:
            site_lat = round(lat + rng.normal(0, JITTER_DEG), 4)
            site_lon = round(lon + rng.normal(0, JITTER_DEG), 4)
        rows.append({
            "id": f"S{i:03d}",
            "name": f"{state} {category} {i}",
            "category": category,
            "latitude": site_lat,
            "longitude": site_lon,
            "state": state,
            "metro": metro if metro in METRO_COORDS else None,
        })
    return pd.DataFrame(rows)


def generate_facilities() -> pd.DataFrame:
    rows = []
    for metro, (lat, lon, city) in METRO_COORDS.items():
        rows.append({
            "id": f"{metro}1",
            "name": f"{metro}1 - {city}",
            "latitude": lat,
            "longitude": lon,
            "metro": metro,
            "tier": 1 if metro in TIER1_METROS else 2,
        })
    return pd.DataFrame(rows)


def main():
    setup_logging()
    n_sites = int(sys.argv[1]) if len(sys.argv) > 1 else 60
    os.makedirs(OUTPUT_DIR, exist_ok=True)

    logger.info("Random seed: %d", SEED)
    sites = generate_sites(n_sites)
    facilities = generate_facilities()

    sites.to_csv(os.path.join(OUTPUT_DIR, "sites.csv"), index=False)
    facilities.to_csv(os.path.join(OUTPUT_DIR, "facilities.csv"), index=False)
    logger.info("Wrote %d sites and %d facilities to %s", len(sites), len(facilities), OUTPUT_DIR)
    logger.info("Sites without coordinates: %d", int(sites["latitude"].isna().sum()))


if __name__ == "__main__":
    main()
