"""Extension identifiers, supported version ranges and vector indexes."""

from enum import Enum


class DatabaseExtension(str, Enum):
    CUBE = "cube"
    EARTH_DISTANCE = "earthdistance"
    VECTOR = "vector"
    VECTORS = "vectors"
    VECTORCHORD = "vchord"


class VectorIndex(str, Enum):
    CLIP = "clip_index"
    FACE = "face_index"


# Preference order when detecting an installed extension
VECTOR_EXTENSIONS = [
    DatabaseExtension.VECTORCHORD,
    DatabaseExtension.VECTORS,
    DatabaseExtension.VECTOR,
]

EXTENSION_NAMES: dict[DatabaseExtension, str] = {
    DatabaseExtension.CUBE: "cube",
    DatabaseExtension.EARTH_DISTANCE: "earthdistance",
    DatabaseExtension.VECTOR: "pgvector",
    DatabaseExtension.VECTORS: "pgvecto.rs",
    DatabaseExtension.VECTORCHORD: "VectorChord",
}

# npm-style ranges
VECTOR_VERSION_RANGES: dict[DatabaseExtension, str] = {
    DatabaseExtension.VECTORCHORD: ">=0.3 <0.6",
    DatabaseExtension.VECTORS: "0.2 || 0.3",
    DatabaseExtension.VECTOR: ">=0.5 <1",
}

POSTGRES_VERSION_RANGE = ">=14.0.0"

VECTOR_INDEX_TABLES: dict[VectorIndex, str] = {
    VectorIndex.CLIP: "smart_search",
    VectorIndex.FACE: "face_search",
}

VECTOR_INDEX_COLUMN = "embedding"


def get_extension_name(extension: DatabaseExtension | str) -> str:
    """Display name used in operator-facing messages (``vchord`` -> ``VectorChord``)."""
    try:
        return EXTENSION_NAMES[DatabaseExtension(extension)]
    except ValueError:
        return str(extension)
