"""
Static geographic reference tables.

Metro codes are the stable facility attribute the engine keys its special
cases on (tier membership, hub preference, regional bias), decided once at
ingestion instead of being re-derived from facility names.
"""

# Candidate POP metros: keyed by metro code, values are (latitude, longitude, city).
METRO_COORDS = {
    "NYC": (40.7128, -74.0060, "New York"),
    "CHI": (41.8781, -87.6298, "Chicago"),
    "DFW": (32.7767, -96.7970, "Dallas"),
    "LAX": (34.0522, -118.2437, "Los Angeles"),
    "SJC": (37.3382, -121.8863, "San Jose"),
    "MIA": (25.7617, -80.1918, "Miami"),
    "HOU": (29.7604, -95.3698, "Houston"),
    "RES": (38.9587, -77.3570, "Reston"),
    "SEA": (47.6062, -122.3321, "Seattle"),
    "ATL": (33.7490, -84.3880, "Atlanta"),
    "DEN": (39.7392, -104.9903, "Denver"),
    "PHX": (33.4484, -112.0740, "Phoenix"),
}

# Low-cost (tier-1) interconnection metros. Facilities in these metros get
# the larger cost bonus when the budget is minimal.
TIER1_METROS = frozenset({"DFW", "CHI", "NYC", "RES", "SJC"})

# Two-letter code -> full name, used when a whole region sits in one state.
STATE_NAMES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}

# Continental-US bounding box used to project lat/lon into the unit square:
# (min_lon, max_lon, min_lat, max_lat).
CONUS_BOUNDS = (-125.0, -66.0, 24.0, 50.0)
