"""Table versions and log file naming.

Every commit of a Delta table lives at ``_delta_log/{version:020d}.json``.
Version 0 is the commit that creates the table; each append claims the next
free version with a create-if-absent write.
"""

from __future__ import annotations

import re
import uuid
from typing import NewType


Version = NewType("Version", int)
"""Position of a commit in the table log. Monotonically increasing, gap-free."""

INITIAL_VERSION = Version(0)
NO_VERSION = Version(-1)
"""Version of a state that has not replayed any commit yet."""

LOG_DIR = "_delta_log"
LAST_CHECKPOINT_PATH = f"{LOG_DIR}/_last_checkpoint"

_COMMIT_FILE = re.compile(r"^(\d{20})\.json$")
_CHECKPOINT_FILE = re.compile(r"^(\d{20})\.checkpoint\.parquet$")


def commit_path(version: Version) -> str:
    """Relative path of the commit file for ``version``."""
    if version < 0:
        raise ValueError(f"version must be non-negative, got {version}")
    return f"{LOG_DIR}/{version:020d}.json"


def checkpoint_path(version: Version) -> str:
    """Relative path of the single-part checkpoint for ``version``."""
    if version < 0:
        raise ValueError(f"version must be non-negative, got {version}")
    return f"{LOG_DIR}/{version:020d}.checkpoint.parquet"


def parse_commit_version(name: str) -> Version | None:
    """Return the version encoded in a commit file name, or None."""
    match = _COMMIT_FILE.match(name)
    return Version(int(match.group(1))) if match else None


def parse_checkpoint_version(name: str) -> Version | None:
    """Return the version encoded in a checkpoint file name, or None."""
    match = _CHECKPOINT_FILE.match(name)
    return Version(int(match.group(1))) if match else None


def new_data_file_path(part: int = 0, codec: str = "snappy") -> str:
    """Generate a unique relative path for a new Parquet data file.

    Example:
        >>> new_data_file_path(0, "zstd")  # doctest: +SKIP
        'part-00000-3f0c...-c000.zstd.parquet'
    """
    suffix = "parquet" if codec == "none" else f"{codec}.parquet"
    return f"part-{part:05d}-{uuid.uuid4()}-c000.{suffix}"
