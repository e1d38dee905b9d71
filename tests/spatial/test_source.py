"""Tests for the batched occurrence source."""

import pandas as pd
import pytest

from hexdiv.spatial.source import CANONICAL_COLUMNS, OccurrenceSource
from tests.helpers.synthetic import make_raw_occurrences, write_occurrence_parquet

pytestmark = pytest.mark.unit


def test_requires_location(internal_config):
    """A source without a location cannot be built."""
    with pytest.raises(ValueError, match="source.location"):
        OccurrenceSource(internal_config)


def test_batches_have_canonical_columns(make_config, temp_dir):
    """Batches are renamed to the canonical layout."""
    path = write_occurrence_parquet(make_raw_occurrences(n=100), temp_dir / "occ.parquet")
    source = OccurrenceSource(make_config(source=str(path)))

    batches = list(source.batches())
    assert batches
    for batch in batches:
        assert tuple(batch.columns) == CANONICAL_COLUMNS
    assert sum(len(b) for b in batches) == 100


def test_null_species_filtered_at_scan(make_config, temp_dir):
    """Rows without species never leave the scanner."""
    raw = make_raw_occurrences(n=50)
    raw.loc[:9, "species"] = None
    path = write_occurrence_parquet(raw, temp_dir / "occ.parquet")

    batches = list(OccurrenceSource(make_config(source=str(path))).batches())
    df = pd.concat(batches)
    assert len(df) == 40
    assert df["species"].notna().all()


def test_batch_size_bounds_batches(make_config, temp_dir):
    """No batch exceeds the configured batch size."""
    path = write_occurrence_parquet(make_raw_occurrences(n=1000), temp_dir / "occ.parquet")
    source = OccurrenceSource(make_config(source=str(path), batch_size=128))

    sizes = [len(b) for b in source.batches()]
    assert max(sizes) <= 128
    assert sum(sizes) == 1000


def test_missing_optional_columns_become_null(make_config, temp_dir):
    """Depth columns absent from the dataset come back as nulls."""
    path = write_occurrence_parquet(make_raw_occurrences(n=20, with_depth=False), temp_dir / "occ.parquet")
    df = pd.concat(OccurrenceSource(make_config(source=str(path))).batches())
    assert df["min_depth"].isna().all()
    assert df["max_depth"].isna().all()
    assert df["record_count"].isna().all()


def test_missing_required_column_raises(make_config, temp_dir):
    """A dataset without the species column is rejected."""
    raw = make_raw_occurrences(n=20).drop(columns=["species"])
    path = write_occurrence_parquet(raw, temp_dir / "occ.parquet")
    source = OccurrenceSource(make_config(source=str(path)))
    with pytest.raises(KeyError, match="species"):
        list(source.batches())


def test_custom_count_column(make_config, temp_dir):
    """A configured count column is mapped to record_count."""
    raw = make_raw_occurrences(n=10)
    raw["individualCount"] = 3
    path = write_occurrence_parquet(raw, temp_dir / "occ.parquet")
    config = make_config(source=str(path), record_count_column="individualCount")
    df = pd.concat(OccurrenceSource(config).batches())
    assert (df["record_count"] == 3).all()
