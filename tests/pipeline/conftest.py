import pytest

from hexdiv.schemas import ParamConfig, UserConfig, InternalConfig
from hexdiv.schemas.resolve import resolve_config
from hexdiv.setup_directories import setup_output_directories
from hexdiv.spatial.indexer import SpatialIndexer
from hexdiv.pipeline.store import PartitionedStore
from tests.helpers.synthetic import make_raw_occurrences, to_canonical, write_occurrence_parquet


@pytest.fixture
def occurrence_path(temp_dir):
    """A 2,000-record occurrence Parquet file."""
    return write_occurrence_parquet(
        make_raw_occurrences(n=2000, seed=7), temp_dir / "source" / "occurrence.parquet"
    )


@pytest.fixture
def pipeline_config(temp_dir, occurrence_path) -> InternalConfig:
    """InternalConfig for pipeline tests, pointed at the synthetic source."""
    user = UserConfig(
        SOURCE=str(occurrence_path),
        BASE_DIR=str(temp_dir / "output"),
        BATCH_SIZE=500,
    )
    return resolve_config(ParamConfig(), user, None)


@pytest.fixture
def pipeline_output_dirs(pipeline_config):
    """Output directories for pipeline tests."""
    return setup_output_directories(pipeline_config.base_dir)


@pytest.fixture
def store(temp_dir):
    """Caller-owned store under the test directory."""
    s = PartitionedStore(temp_dir / "partitions")
    yield s
    s.dispose(remove=True)


@pytest.fixture
def indexed_records(internal_config):
    """Indexed batch of 3,000 synthetic records at resolutions 3 and 4."""
    raw = make_raw_occurrences(n=3000, seed=11)
    return SpatialIndexer(internal_config).index(to_canonical(raw))
