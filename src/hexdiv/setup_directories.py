"""
Directory setup for the diversity pipeline.

Flat structure under one base directory:
- partitions/: partitioned occurrence store (res=<R>/partition=<K>/)
- results/: one table per resolution and pass (res<R>/<pass>.parquet)
- logs/: pipeline log files

Author: hexdiv contributors
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_output_directories(base_output_dir="./output"):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory (default ``./output``). ``~`` is expanded.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'partitions', 'results', 'logs'
    """
    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "partitions": base_output_dir / "partitions",
        "results": base_output_dir / "results",
        "logs": base_output_dir / "logs",
    }

    for key, path in directories.items():
        path.mkdir(parents=True, exist_ok=True)

    for key, path in directories.items():
        logger.debug("  %-12s: %s", key, path)

    return directories


def get_result_path(output_dirs, resolution, pass_name, suffix="parquet"):
    """
    Get the file path of one result table.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    resolution : int
        Hex-grid resolution of the table
    pass_name : str
        Name of the aggregation pass (e.g. 'all', 'shallow')
    suffix : str
        File extension without dot

    Returns
    -------
    Path
        Full path: results/res<R>/<pass_name>.<suffix>

    Example
    -------
    >>> get_result_path(dirs, 3, 'shallow')
    Path('output/results/res3/shallow.parquet')
    """
    res_dir = Path(output_dirs["results"]) / f"res{resolution}"
    res_dir.mkdir(parents=True, exist_ok=True)
    return res_dir / f"{pass_name}.{suffix}"


def get_log_path(output_dirs, name="hexdiv_pipeline"):
    """
    Get the pipeline log file path.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    name : str, optional
        Log file stem

    Returns
    -------
    Path
        Full path: logs/<name>.log
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"{name}.log"
