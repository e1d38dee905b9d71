"""Formal pipeline invariants.

This file documents what each stage MUST produce. This is architecture, not code.
Use this file as a reviewer anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "indexing": [
        "Records with null/empty species are dropped",
        "Records without valid coordinates are dropped",
        "Records with min_depth > max_depth are dropped",
        "record_count is a positive integer (missing -> 1)",
        "depth = mean of present min_depth/max_depth, else missing",
        "cell_<res> and partition_<res> exist for every configured resolution",
    ],

    "store": [
        "One directory per (resolution, partition key)",
        "Only cell_id, species, record_count, depth are persisted",
        "First write of a run clears prior contents for that resolution",
        "Reading a missing key raises PartitionNotFoundError (never empty)",
    ],

    "diversity": [
        "One row per cell, indexed by cell_id",
        "n > 0 and sp > 0 for every row",
        "simpson and maxp in (0, 1], shannon >= 0",
        "hill_1, hill_2, hill_inf >= 1, all equal to 1 iff sp == 1",
        "No NaN or infinite values",
    ],

    "aggregation": [
        "Partial tables of one run are disjoint in cell_id",
        "Merged table is sorted by cell_id",
        "A failed run returns no table",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "indexing": "REQUIRED",
    "store": "REQUIRED",
    "diversity": "REQUIRED",
    "aggregation": "REQUIRED",
    "export": "OPTIONAL",    # Only when output is enabled
}
