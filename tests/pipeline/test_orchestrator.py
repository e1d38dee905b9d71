"""End-to-end tests for the pipeline orchestrator."""

import logging

import pandas as pd
import pytest
from shapely.geometry import box

from hexdiv.pipeline.orchestrator import PipelineOrchestrator
from hexdiv.schemas import ParamConfig, UserConfig, resolve_config
from hexdiv.setup_directories import setup_output_directories
from hexdiv.spatial.hexgrid import HexGrid

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def make_pipeline_config(temp_dir, occurrence_path, **overrides):
    user = UserConfig(
        SOURCE=str(occurrence_path),
        BASE_DIR=str(temp_dir / "output"),
        BATCH_SIZE=500,
        **overrides,
    )
    return resolve_config(ParamConfig(), user, None)


def test_orchestrator_initialization(pipeline_config, pipeline_output_dirs):
    """Orchestrator stores config and output directories."""
    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    assert orch.config == pipeline_config
    assert orch.output_dirs == pipeline_output_dirs
    assert orch.results == {}


def test_full_run_produces_every_table(pipeline_config, pipeline_output_dirs):
    """Every (resolution, pass) pair yields a table and a file."""
    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    results = orch.start(setup_logging=False)

    expected = {(res, name) for res in (3, 4) for name in ("all", "shallow", "deep")}
    assert set(results) == expected
    assert orch.failures == {}

    for key, path in orch.saved_paths.items():
        assert path.exists()
        saved = pd.read_parquet(path)
        assert len(saved) == len(results[key])


def test_all_pass_counts_every_record(pipeline_config, pipeline_output_dirs):
    """The unfiltered pass accounts for every ingested record."""
    results = PipelineOrchestrator(pipeline_config, pipeline_output_dirs).start(setup_logging=False)
    assert results[(3, "all")]["n"].sum() == 2000
    assert results[(4, "all")]["n"].sum() == 2000


def test_store_disposed_after_run(pipeline_config, pipeline_output_dirs):
    """Partitions are removed unless asked to keep them."""
    PipelineOrchestrator(pipeline_config, pipeline_output_dirs).start(setup_logging=False)
    assert not any(pipeline_output_dirs["partitions"].glob("res=*"))


def test_keep_partitions(temp_dir, occurrence_path):
    """KEEP_PARTITIONS leaves the store on disk."""
    config = make_pipeline_config(temp_dir, occurrence_path, KEEP_PARTITIONS=True)
    output_dirs = setup_output_directories(config.base_dir)
    PipelineOrchestrator(config, output_dirs).start(setup_logging=False)
    assert (output_dirs["partitions"] / "res=3").is_dir()


def test_missing_source_rejected(internal_config, output_dirs):
    """A run without a source dataset fails before touching storage."""
    orch = PipelineOrchestrator(internal_config, output_dirs)
    with pytest.raises(ValueError, match="source"):
        orch.start(setup_logging=False)


def test_region_restriction(temp_dir, occurrence_path):
    """REGION_BBOX keeps only cells covering the box."""
    bbox = (1.0, 48.0, 4.0, 50.0)  # around Paris
    config = make_pipeline_config(temp_dir, occurrence_path, REGION_BBOX=bbox, RESOLUTIONS=[3])
    output_dirs = setup_output_directories(config.base_dir)
    results = PipelineOrchestrator(config, output_dirs).start(setup_logging=False)

    table = results[(3, "all")]
    assert len(table) > 0
    allowed = HexGrid().polygon_to_cells(box(*bbox), 3)
    assert set(table.index) <= allowed


def test_failed_pass_isolated(pipeline_config, pipeline_output_dirs, monkeypatch):
    """One failing pass is reported; the others are still exported."""
    from hexdiv.core.errors import StorageError
    from hexdiv.pipeline.store import PartitionedStore

    real_read = PartitionedStore.read

    def flaky_read(self, resolution, key, row_filter=None, columns=None):
        if resolution == 4 and row_filter is not None and row_filter.name == "shallow":
            raise StorageError("disk failure")
        return real_read(self, resolution, key, row_filter=row_filter, columns=columns)

    monkeypatch.setattr(PartitionedStore, "read", flaky_read)

    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    results = orch.start(setup_logging=False)

    assert (4, "shallow") not in results
    assert set(orch.failures) == {(4, "shallow")}
    assert len(results) == 5


def test_setup_logging_writes_log_file(pipeline_config, pipeline_output_dirs):
    """Logging goes to logs/hexdiv_pipeline.log."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    try:
        orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
        orch._setup_logging()
        logging.getLogger("hexdiv.test").info("hello from test")
        for handler in root.handlers:
            handler.flush()
        log_file = pipeline_output_dirs["logs"] / "hexdiv_pipeline.log"
        assert log_file.exists()
        assert "hello from test" in log_file.read_text()
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_stop_is_idempotent(pipeline_config, pipeline_output_dirs):
    """Calling stop() multiple times is safe."""
    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    orch.stop()
    orch.stop()


def test_run_with_logging_releases_handlers(pipeline_config, pipeline_output_dirs):
    """A run that installs log handlers removes and closes them at stop()."""
    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    orch.start()

    log_file = pipeline_output_dirs["logs"] / "hexdiv_pipeline.log"
    assert "Pipeline finished" in log_file.read_text()
    file_handlers = [h for h in logging.getLogger().handlers
                     if isinstance(h, logging.FileHandler)]
    assert all(h.baseFilename != str(log_file) for h in file_handlers)
    assert orch._log_handlers == []


def test_write_failure_aborts_run(pipeline_config, pipeline_output_dirs, monkeypatch):
    """A store write failure ends the run with no results and a disposed store."""
    from hexdiv.core.errors import StorageWriteError
    from hexdiv.pipeline.store import PartitionedStore

    def failing_write(self, records, resolution):
        raise StorageWriteError("disk full")

    monkeypatch.setattr(PartitionedStore, "write", failing_write)

    orch = PipelineOrchestrator(pipeline_config, pipeline_output_dirs)
    with pytest.raises(StorageWriteError):
        orch.start(setup_logging=False)

    assert orch.results == {}
    assert orch.saved_paths == {}
    assert orch.store is None


def test_region_failure_isolated_per_pass(temp_dir, occurrence_path, monkeypatch):
    """An error while restricting one pass to the region spares the others."""
    from hexdiv.pipeline import orchestrator as orchestrator_module

    real_restrict = orchestrator_module.restrict_to_region
    calls = []

    def flaky_restrict(table, grid, region, resolution):
        calls.append(resolution)
        if len(calls) == 2:
            raise ValueError("invalid polygon")
        return real_restrict(table, grid, region, resolution)

    monkeypatch.setattr(orchestrator_module, "restrict_to_region", flaky_restrict)

    config = make_pipeline_config(temp_dir, occurrence_path, REGION_BBOX=(1.0, 48.0, 4.0, 50.0))
    output_dirs = setup_output_directories(config.base_dir)
    orch = PipelineOrchestrator(config, output_dirs)
    results = orch.start(setup_logging=False)

    assert set(orch.failures) == {(3, "shallow")}
    assert isinstance(orch.failures[(3, "shallow")], ValueError)
    assert len(results) == 5
    assert (3, "shallow") not in orch.saved_paths


def test_degenerate_region_does_not_abort_run(temp_dir, occurrence_path):
    """A degenerate bbox fails every pass but the run still completes."""
    config = make_pipeline_config(temp_dir, occurrence_path,
                                  REGION_BBOX=(4.0, 48.0, 1.0, 50.0), RESOLUTIONS=[3])
    output_dirs = setup_output_directories(config.base_dir)
    orch = PipelineOrchestrator(config, output_dirs)
    results = orch.start(setup_logging=False)

    assert results == {}
    assert set(orch.failures) == {(3, "all"), (3, "shallow"), (3, "deep")}
    assert orch.store is None
