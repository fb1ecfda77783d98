"""Vector index DDL and rebuild heuristics.

Pure helpers used by ``AsyncPostgresAdapter.reindex_vectors_if_needed()``:
build the ``CREATE INDEX`` statement for the active extension and decide
whether an existing index definition is stale.

Example:
    >>> target_list_count(100_000)
    1
    >>> target_list_count(500_000)
    512
"""

import math
import re

from db_reconciler.constants import VECTOR_INDEX_COLUMN, DatabaseExtension

_LISTS_PATTERN = re.compile(r"lists\s*=\s*\[\s*(\d+)\s*\]")


def target_list_count(row_count: int) -> int:
    """Number of VectorChord IVF lists for a table of *row_count* rows.

    Below 128k rows one list is enough; up to ~2M rows the count grows with
    ``rows / 1000``, beyond that with the square root of the row count.
    Always a power of two.
    """
    if row_count < 128_000:
        return 1
    if row_count < 2_048_000:
        return 1 << (row_count // 1000).bit_length()
    return 1 << (math.isqrt(row_count).bit_length() + 1)


def get_list_count(index_definition: str) -> int | None:
    """Parse ``lists = [N]`` out of a VectorChord index definition."""
    match = _LISTS_PATTERN.search(index_definition)
    return int(match.group(1)) if match else None


def needs_reindex(
    extension: DatabaseExtension,
    index_definition: str | None,
    row_count: int = 0,
) -> bool:
    """Decide whether a vector index must be rebuilt.

    Args:
        extension: The active vector extension.
        index_definition: ``pg_indexes.indexdef`` of the index, or ``None``
            if the index does not exist.
        row_count: Rows in the indexed table (VectorChord only).
    """
    if index_definition is None:
        return True

    definition = index_definition.lower()
    if extension == DatabaseExtension.VECTOR:
        return "using hnsw" not in definition
    if extension == DatabaseExtension.VECTORS:
        return "using vectors" not in definition
    if extension == DatabaseExtension.VECTORCHORD:
        if "using vchordrq" not in definition:
            return True
        return get_list_count(definition) != target_list_count(row_count)
    return False


def vector_index_query(
    extension: DatabaseExtension,
    index_name: str,
    table_name: str,
    lists: int = 1,
) -> str:
    """``CREATE INDEX`` statement for a cosine-distance vector index.

    Raises:
        ValueError: If *extension* is not a vector extension.
    """
    prefix = f'CREATE INDEX IF NOT EXISTS "{index_name}" ON "{table_name}"'

    if extension == DatabaseExtension.VECTORCHORD:
        return (
            f"{prefix} USING vchordrq ({VECTOR_INDEX_COLUMN} vector_cosine_ops) WITH (options = $$\n"
            "residual_quantization = false\n"
            "[build.internal]\n"
            f"lists = [{lists}]\n"
            "spherical_centroids = true\n"
            "build_threads = 4\n"
            "sampling_factor = 1024\n"
            "$$)"
        )

    if extension == DatabaseExtension.VECTORS:
        return (
            f"{prefix} USING vectors ({VECTOR_INDEX_COLUMN} vector_cos_ops) WITH (options = $$\n"
            "optimizing.optimizing_threads = 4\n"
            "[indexing.hnsw]\n"
            "m = 16\n"
            "ef_construction = 300\n"
            "$$)"
        )

    if extension == DatabaseExtension.VECTOR:
        return (
            f"{prefix} USING hnsw ({VECTOR_INDEX_COLUMN} vector_cosine_ops) "
            "WITH (ef_construction = 300, m = 16)"
        )

    raise ValueError(f"Unsupported vector extension: '{extension.value}'")
