"""Built-in TIPLOC to CRS table and the optional on-disk override map."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Major stations whose TIPLOC equals the CRS, plus aliases observed in the feed
BUILTIN_TIPLOC_TO_CRS: dict[str, str] = {
    "KGX": "KGX",
    "PAD": "PAD",
    "VIC": "VIC",
    "WAT": "WAT",
    "EUS": "EUS",
    "LST": "LST",
    "MAN": "MAN",
    "BHM": "BHM",
    "LDS": "LDS",
    "EDB": "EDB",
    "GLC": "GLC",
    "BRI": "BRI",
    "NCL": "NCL",
    "SHF": "SHF",
    "NOT": "NOT",
    "LPL": "LIV",
    "CRDFCEN": "CDF",
    "CARDIFFC": "CDF",
    "GLGQHL": "GLQ",
    "GLQ": "GLQ",
    "NEWHVNH": "NHE",
    "STPXI": "STP",
    "STP": "STP",
    "KNGX": "KGX",
    "EUSTON": "EUS",
    "LIVST": "LIV",
    "LIVERST": "LIV",
    "PADTON": "PAD",
}

DEFAULT_MAP_FILE = Path("data") / "tiploc-to-crs.json"


def normalize_mapping(raw: object) -> dict[str, str]:
    """Keep only string pairs whose code is three characters, upper-cased."""
    if not isinstance(raw, dict):
        return {}
    return {
        str(tiploc).strip().upper(): code.strip().upper()
        for tiploc, code in raw.items()
        if isinstance(code, str) and len(code.strip()) == 3 and str(tiploc).strip()
    }


def load_override_map(path: Path | None) -> dict[str, str]:
    """Read the override map, returning an empty map when absent or unreadable."""
    if path is None or not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            mapping = normalize_mapping(json.load(f))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable TIPLOC map {path}: {e}")
        return {}
    logger.info(f"Loaded {len(mapping)} TIPLOC mappings from {path}")
    return mapping
