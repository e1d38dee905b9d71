"""Core diversity pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import shutil
import logging
import argparse
import importlib.util
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from hexdiv.setup_directories import setup_output_directories
from hexdiv.pipeline.orchestrator import PipelineOrchestrator
from hexdiv.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig, InternalConfig


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load config module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def persist_runtime_config(config: InternalConfig, output_dirs: Dict[str, Path]) -> Path:
    """Save the resolved configuration next to the outputs.

    Returns the path of ``runtime_config_<run id>.json`` under the base dir.
    """
    run_id = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    config_file = Path(output_dirs["base"]) / f"runtime_config_{run_id}.json"

    config_dict = config.model_dump()
    config_dict["run_id"] = run_id
    config_dict["created_at"] = datetime.now(timezone.utc).isoformat()

    with open(config_file, 'w') as f:
        json.dump(config_dict, f, indent=2, default=str)
    return config_file


def build_config(user_config_path: Optional[str] = None,
                 cli_args: Optional[Dict[str, Any]] = None,
                 verbose: bool = False) -> InternalConfig:
    """Resolve the runtime configuration (Param < User < CLI).

    ``user_config_path`` may be None to run on expert defaults plus CLI
    overrides alone.
    """
    param_cfg = ParamConfig()  # Expert defaults

    if user_config_path is not None:
        user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))
    else:
        user_cfg = UserConfig()

    cli_args = dict(cli_args or {})
    if verbose and cli_args.get("log_level") is None:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    return resolve_config(param_cfg, user_cfg, cli_cfg)


def run_diversity_pipeline(
    user_config_path: Optional[str],
    cli_args: Optional[Dict[str, Any]] = None,
    rerun: bool = False,
    verbose: bool = False
) -> dict:
    """Execute the hex-grid diversity pipeline.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Optionally cleans the output directory if rerun=True
    3. Sets up output directories and saves the resolved config
    4. Runs the pipeline orchestrator to completion

    Parameters
    ----------
    user_config_path : str or None
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: source, base_dir, resolutions,
        max_workers, keep_partitions, log_level. All optional.

    rerun : bool, optional
        If True, delete the output directory before running.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    dict
        ``{(resolution, pass name): cell table}`` for every successful pass.

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    pydantic.ValidationError
        If configuration validation fails.

    Examples
    --------
    Run with user config only::

        run_diversity_pipeline("scripts/user_config.py")

    Run with CLI overrides::

        run_diversity_pipeline(
            "scripts/user_config.py",
            cli_args={"source": "/data/obis.parquet", "resolutions": [3]},
        )
    """
    config = build_config(user_config_path, cli_args, verbose)

    # Clean output directories if --rerun specified
    if rerun:
        base_dir_path = Path(config.base_dir)
        if base_dir_path.exists():
            print(f"Cleaning output directory: {base_dir_path}")
            shutil.rmtree(base_dir_path)
            print("Output directory cleaned")

    output_dirs = setup_output_directories(config.base_dir)
    config_file = persist_runtime_config(config, output_dirs)

    print(f"\n{'='*60}")
    print("hexdiv Diversity Pipeline")
    print('='*60)
    print(f"Config:      {user_config_path}")
    print(f"Source:      {config.source.location}")
    print(f"Resolutions: {config.indexer.resolutions}")
    print(f"Passes:      {[p.name for p in config.passes]}")
    print(f"Output:      {config.base_dir}")
    print(f"Saved:       {config_file}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2, default=str))
        print('='*60)

    orchestrator = PipelineOrchestrator(config, output_dirs)
    return orchestrator.start()


def _parse_resolutions(value: str) -> list:
    try:
        return [int(r) for r in value.split(",") if r.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"resolutions must be comma-separated integers: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hexdiv",
        description="Compute hex-grid biodiversity indicators from occurrence records",
    )
    parser.add_argument("config", nargs="?", default=None, help="Path to user config file")
    parser.add_argument("--source", help="Occurrence dataset (Parquet file, directory or URI)")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--resolutions", type=_parse_resolutions, help="Comma-separated resolutions, e.g. 3,4")
    parser.add_argument("--max-workers", type=int, help="Partitions computed concurrently")
    parser.add_argument("--keep-partitions", action="store_true", default=None,
                        help="Keep the partitioned store after the run")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    cli_args = {
        "source": args.source,
        "base_dir": args.base_dir,
        "resolutions": args.resolutions,
        "max_workers": args.max_workers,
        "keep_partitions": args.keep_partitions,
    }
    try:
        run_diversity_pipeline(args.config, cli_args, rerun=args.rerun, verbose=args.verbose)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
