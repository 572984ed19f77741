"""
Workspace Service - Materializes request files inside the Anchor workspace.

Provides:
- Safe resolution of client-supplied relative paths
- Whole-request path resolution ahead of any write
- Program directory scaffolding
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple

from app.constants import (
    ANCHOR_MANIFEST_FILENAME,
    DIR_MODE,
    FILE_MODE,
    PROGRAMS_DIRNAME,
    TESTS_DIRNAME,
)

logger = logging.getLogger(__name__)


class UnsafePathError(ValueError):
    """Raised when a client-supplied path would escape its base directory."""
    pass


def resolve_within(base_dir: Path, relative_path: str) -> Path:
    """
    Resolve a client-supplied relative path inside base_dir.

    Args:
        base_dir: Directory the path must stay inside
        relative_path: Path as sent by the client (e.g. "src/lib.rs")

    Returns:
        Absolute resolved path

    Raises:
        UnsafePathError: If the path is absolute or escapes base_dir
    """
    candidate = Path(relative_path)
    if candidate.is_absolute() or candidate.drive:
        raise UnsafePathError(f"Absolute paths are not allowed: '{relative_path}'")

    base = base_dir.resolve()
    target = (base / candidate).resolve()
    if target == base or base not in target.parents:
        raise UnsafePathError(f"Path escapes its directory: '{relative_path}'")
    return target


def write_file(path: Path, content: str) -> None:
    """Write a text file, creating parent directories as needed."""
    path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    path.chmod(FILE_MODE)


@dataclass
class RequestFiles:
    """Client files resolved to absolute workspace paths, not yet written."""
    program: List[Tuple[Path, str]] = field(default_factory=list)
    tests: List[Tuple[Path, str]] = field(default_factory=list)
    config: List[Tuple[Path, str]] = field(default_factory=list)

    def has_program_file(self, path: Path) -> bool:
        return any(resolved == path for resolved, _ in self.program)


class Workspace:
    """
    A pre-scaffolded Anchor workspace on disk.

    Layout:
        <root>/Anchor.toml
        <root>/programs/<project>/...
        <root>/tests/...
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    @property
    def manifest_path(self) -> Path:
        return self.root / ANCHOR_MANIFEST_FILENAME

    @property
    def tests_dir(self) -> Path:
        return self.root / TESTS_DIRNAME

    def program_dir(self, project_name: str) -> Path:
        return self.root / PROGRAMS_DIRNAME / project_name

    def exists(self) -> bool:
        """Check the workspace has been scaffolded."""
        return self.manifest_path.is_file()

    def create_program_dir(self, project_name: str) -> Path:
        """
        Create programs/<project_name>/src if it does not exist.

        Returns:
            Path of the program directory
        """
        program_dir = self.program_dir(project_name)
        (program_dir / "src").mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        logger.info(f"Program directory ready: {program_dir}")
        return program_dir

    def resolve_request(
        self,
        project_name: str,
        program_files: Iterable[Tuple[str, str]],
        test_files: Iterable[Tuple[str, str]],
        config_files: Iterable[Tuple[str, str]]
    ) -> RequestFiles:
        """
        Resolve every client path of a request without touching the disk.

        Raises:
            UnsafePathError: If any path is absolute or escapes its directory
        """
        program_dir = self.program_dir(project_name)
        return RequestFiles(
            program=[(resolve_within(program_dir, path), content) for path, content in program_files],
            tests=[(resolve_within(self.tests_dir, path), content) for path, content in test_files],
            config=[(resolve_within(self.root, path), content) for path, content in config_files],
        )

    def write_request(self, project_name: str, files: RequestFiles, written_tests: List[Path]) -> None:
        """
        Write resolved request files.

        Test file paths are appended to written_tests as each one lands, so
        the caller can remove them even if a later write fails.
        """
        self.create_program_dir(project_name)
        for path, content in files.program:
            write_file(path, content)
            logger.debug(f"Wrote {path}")

        self.tests_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        for path, content in files.tests:
            write_file(path, content)
            written_tests.append(path)
            logger.debug(f"Wrote {path}")

        for path, content in files.config:
            write_file(path, content)
            logger.debug(f"Wrote {path}")

        logger.info(
            f"Materialized '{project_name}': {len(files.program)} program, "
            f"{len(files.tests)} test, {len(files.config)} config files"
        )
