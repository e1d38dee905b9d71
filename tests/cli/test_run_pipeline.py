"""Tests for the command-line pipeline runner."""

import json

import pandas as pd
import pytest

from hexdiv.cli.run_pipeline import (
    build_config,
    build_parser,
    load_user_config_dict,
    main,
    persist_runtime_config,
    run_diversity_pipeline,
)
from hexdiv.setup_directories import setup_output_directories
from tests.helpers.synthetic import make_raw_occurrences, write_occurrence_parquet


def write_user_config(path, config):
    path.write_text(f"CONFIG = {config!r}\n")
    return path


@pytest.fixture
def source_path(temp_dir):
    return write_occurrence_parquet(
        make_raw_occurrences(n=600, seed=21), temp_dir / "source" / "occurrence.parquet"
    )


class TestLoadUserConfig:
    """Test loading CONFIG dicts from Python files."""

    pytestmark = pytest.mark.unit

    def test_loads_config_dict(self, temp_dir):
        path = write_user_config(temp_dir / "user_config.py", {"ESN": 20, "RESOLUTIONS": [3]})

        assert load_user_config_dict(str(path)) == {"ESN": 20, "RESOLUTIONS": [3]}

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_user_config_dict(str(temp_dir / "nope.py"))

    def test_file_without_config(self, temp_dir):
        path = temp_dir / "empty_config.py"
        path.write_text("SETTINGS = {}\n")

        with pytest.raises(ValueError, match="No CONFIG dict"):
            load_user_config_dict(str(path))


class TestBuildConfig:
    """Test Param < User < CLI resolution from the command line."""

    pytestmark = pytest.mark.unit

    def test_defaults_without_user_file(self):
        config = build_config()

        assert config.indexer.resolutions == [3, 4]
        assert config.logging.level == "INFO"

    def test_cli_args_override_user_file(self, temp_dir):
        path = write_user_config(temp_dir / "user_config.py", {
            "SOURCE": "/data/a.parquet", "MAX_WORKERS": 2,
        })
        config = build_config(str(path), {"source": "/data/b.parquet", "max_workers": None})

        assert config.source.location == "/data/b.parquet"
        assert config.aggregator.max_workers == 2

    def test_verbose_sets_debug(self):
        assert build_config(verbose=True).logging.level == "DEBUG"

    def test_persist_runtime_config(self, temp_dir):
        config = build_config(cli_args={"source": "/data/a.parquet"})
        dirs = setup_output_directories(temp_dir / "out")

        path = persist_runtime_config(config, dirs)

        saved = json.loads(path.read_text())
        assert path.parent == dirs["base"]
        assert path.name.startswith("runtime_config_")
        assert saved["source"]["location"] == "/data/a.parquet"
        assert "run_id" in saved


class TestParser:
    """Test argument parsing."""

    pytestmark = pytest.mark.unit

    def test_all_options(self):
        args = build_parser().parse_args([
            "cfg.py", "--source", "/data/x.parquet", "--base-dir", "/tmp/o",
            "--resolutions", "3,5", "--max-workers", "4", "--keep-partitions", "--rerun", "-v",
        ])

        assert args.config == "cfg.py"
        assert args.source == "/data/x.parquet"
        assert args.base_dir == "/tmp/o"
        assert args.resolutions == [3, 5]
        assert args.max_workers == 4
        assert args.keep_partitions is True
        assert args.rerun is True
        assert args.verbose is True

    def test_defaults_leave_overrides_unset(self):
        args = build_parser().parse_args([])

        assert args.config is None
        assert args.resolutions is None
        assert args.keep_partitions is None

    def test_bad_resolutions(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--resolutions", "3,x"])


@pytest.mark.integration
class TestEndToEnd:
    """Run the whole pipeline from the command line."""

    def test_run_from_user_file(self, temp_dir, source_path):
        base = temp_dir / "out"
        path = write_user_config(temp_dir / "user_config.py", {
            "SOURCE": str(source_path),
            "BASE_DIR": str(base),
            "RESOLUTIONS": [3],
            "BATCH_SIZE": 200,
        })

        results = run_diversity_pipeline(str(path))

        assert set(results) == {(3, "all"), (3, "shallow"), (3, "deep")}
        assert results[(3, "all")]["n"].sum() == 600
        saved = pd.read_parquet(base / "results" / "res3" / "all.parquet")
        assert len(saved) == len(results[(3, "all")])
        assert list(base.glob("runtime_config_*.json"))
        assert not list((base / "partitions").glob("res=*"))

    def test_main_with_cli_overrides(self, temp_dir, source_path):
        base = temp_dir / "cli_out"

        code = main([
            "--source", str(source_path), "--base-dir", str(base),
            "--resolutions", "4", "--max-workers", "2", "--keep-partitions",
        ])

        assert code == 0
        assert (base / "results" / "res4" / "deep.parquet").exists()
        assert list((base / "partitions").glob("res=4/partition=*"))

    def test_rerun_cleans_output(self, temp_dir, source_path):
        base = temp_dir / "rerun_out"
        stale = base / "results" / "res9" / "old.parquet"
        stale.parent.mkdir(parents=True)
        stale.write_text("stale")

        run_diversity_pipeline(None, {"source": str(source_path), "base_dir": str(base),
                                      "resolutions": [3]}, rerun=True)

        assert not stale.exists()
        assert (base / "results" / "res3" / "all.parquet").exists()
