"""Append-only, timestamped backups of configuration files."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

STAMP_FORMAT = "%Y%m%d_%H%M%S"


def timestamped_backup(
    source: Path,
    name_pattern: str,
    clock: Callable[[], datetime] = datetime.now,
) -> Path:
    """
    Copy a file next to itself under a timestamped name.

    The pattern may use `{stamp}` and `{name}` (the source file name). An
    existing backup is never overwritten: a collision within the same second
    gets a numeric suffix on the stamp.

    Returns:
        The path of the new backup.

    Raises:
        OSError: If the copy fails.
    """

    stamp = clock().strftime(STAMP_FORMAT)
    suffix = 0
    while True:
        label = stamp if suffix == 0 else f"{stamp}_{suffix}"
        candidate = source.parent / name_pattern.format(stamp=label, name=source.name)
        try:
            with open(source, "rb") as src, open(candidate, "xb") as dst:
                shutil.copyfileobj(src, dst)
        except FileExistsError:
            suffix += 1
            continue
        shutil.copymode(source, candidate)
        return candidate
