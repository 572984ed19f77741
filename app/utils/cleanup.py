"""
Cleanup utilities for materialized request files.

`anchor test` runs every test file under tests/, so files written for one request
must be removed before the next request runs.
"""
import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def cleanup_test_files(files: Iterable[Path], tests_dir: Path) -> bool:
    """
    Delete test files written for a run.

    Args:
        files: Files to delete
        tests_dir: The workspace tests directory; it is never removed itself

    Returns:
        True if cleanup successful, False otherwise
    """
    success = True
    removed = 0

    for file_path in files:
        try:
            file_path.unlink(missing_ok=True)
            removed += 1
            _cleanup_empty_parents(file_path.parent, stop_at=tests_dir)
        except OSError as e:
            logger.error(f"Failed to cleanup test file {file_path}: {e}")
            success = False

    if removed:
        logger.info(f"Cleaned up {removed} test file(s)")
    return success


def _cleanup_empty_parents(directory: Path, stop_at: Path, max_levels: int = 10):
    """
    Remove empty directories between directory and stop_at (exclusive).

    Args:
        directory: Starting directory
        stop_at: Directory that must be kept
        max_levels: Maximum number of parent levels to check
    """
    stop_at = stop_at.resolve()
    directory = directory.resolve()

    for _ in range(max_levels):
        if directory == stop_at or stop_at not in directory.parents:
            break
        if not directory.exists():
            break

        try:
            # Only remove if directory is empty
            if not any(directory.iterdir()):
                directory.rmdir()
                logger.debug(f"Removed empty directory: {directory}")
                directory = directory.parent
            else:
                # Directory not empty, stop
                break
        except (OSError, PermissionError) as e:
            logger.debug(f"Could not remove directory {directory}: {e}")
            break
