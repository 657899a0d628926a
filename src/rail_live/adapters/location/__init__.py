"""Location code resolution: TIPLOC to CRS."""

from .corpus_lookup_client import CorpusLookupClient
from .corpus_table import CorpusTable, build_tiploc_map
from .location_code_resolver import LocationCodeResolver
from .mapping_persister import MappingPersister
from .tiploc_table import BUILTIN_TIPLOC_TO_CRS, DEFAULT_MAP_FILE, load_override_map

__all__ = [
    "BUILTIN_TIPLOC_TO_CRS",
    "DEFAULT_MAP_FILE",
    "CorpusLookupClient",
    "CorpusTable",
    "LocationCodeResolver",
    "MappingPersister",
    "build_tiploc_map",
    "load_override_map",
]
