"""
Project Service - Runs one build/test cycle for a submitted Anchor project.

Provides:
- File materialization and program id injection
- anchor build / anchor test invocation
- Parsing of test output into a TestReport
"""
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from app.config import Settings
from app.constants import PROGRAM_ENTRYPOINT
from app.models.schemas import CompileRequest
from app.parser import TestReport, parse_test_log
from app.services.anchor_service import AnchorCommandError, AnchorRunner, ToolchainResult
from app.services.keypair_service import generate_keypair, write_keypair
from app.services.manifest_service import ManifestError, update_anchor_toml, update_entrypoint
from app.services.workspace_service import Workspace
from app.utils.cleanup import cleanup_test_files

logger = logging.getLogger(__name__)

# Global lock to prevent concurrent runs in the shared workspace
_workspace_lock = threading.Lock()


class TestRunError(AnchorCommandError):
    """Raised when `anchor test` fails; carries the report parsed from its output."""

    def __init__(self, message: str, result: ToolchainResult, report: TestReport):
        super().__init__(message, result)
        self.report = report


@dataclass
class PreparedProject:
    """Files and ids produced while preparing the workspace."""
    project_name: str
    program_id: str
    keypair_path: Path
    test_files: List[Path] = field(default_factory=list)


@dataclass
class TestRunOutcome:
    """Result of a successful build and test cycle."""
    program_id: str
    build: ToolchainResult
    test: ToolchainResult
    report: TestReport


class ProjectService:
    """Coordinates workspace, keypair, manifest and anchor operations."""

    def __init__(self, settings: Settings, runner: AnchorRunner = None):
        """
        Initialize project service.

        Args:
            settings: Application settings
            runner: Anchor runner; built from settings if not given
        """
        self.settings = settings
        self.workspace = Workspace(settings.WORKSPACE_PATH)
        self.runner = runner or AnchorRunner(
            self.workspace.root,
            binary=settings.ANCHOR_BINARY,
            build_timeout=settings.ANCHOR_BUILD_TIMEOUT_SECONDS,
            test_timeout=settings.ANCHOR_TEST_TIMEOUT_SECONDS,
            test_extra_args=settings.anchor_test_extra_args
        )

    def _require_workspace(self) -> None:
        if not self.workspace.exists():
            raise ManifestError(
                f"Failed to read Anchor.toml: workspace not scaffolded at {self.workspace.root}"
            )

    def create_project(self, project_name: str) -> Path:
        """
        Scaffold programs/<project_name>/src in the workspace.

        Raises:
            ManifestError: If the workspace has not been scaffolded
        """
        self._require_workspace()
        with _workspace_lock:
            return self.workspace.create_program_dir(project_name)

    def prepare(self, request: CompileRequest, written_tests: Optional[List[Path]] = None) -> PreparedProject:
        """
        Write request files and inject a fresh program id.

        Every path is resolved and the entry point located before anything is
        written. Test files are recorded in written_tests as they are written.
        Caller must hold the workspace lock.

        Raises:
            UnsafePathError: If a file path escapes its directory
            ManifestError: If Anchor.toml or lib.rs cannot be read or updated
        """
        self._require_workspace()
        name = request.project_name
        if written_tests is None:
            written_tests = []

        files = self.workspace.resolve_request(
            name, request.program_files, request.test_files, request.config_files
        )
        entrypoint = self.workspace.program_dir(name).joinpath(*PROGRAM_ENTRYPOINT).resolve()
        if not files.has_program_file(entrypoint) and not entrypoint.is_file():
            raise ManifestError(f"Failed to read lib.rs: {entrypoint} is neither submitted nor present")

        self.workspace.write_request(name, files, written_tests)

        keypair = generate_keypair()
        keypair_file = write_keypair(self.workspace.root, name, keypair)

        update_anchor_toml(
            self.workspace.manifest_path, name, keypair.program_id, self.settings.ANCHOR_CLUSTER
        )
        update_entrypoint(entrypoint, keypair.program_id)

        return PreparedProject(
            project_name=name,
            program_id=keypair.program_id,
            keypair_path=keypair_file,
            test_files=list(written_tests)
        )

    def _cleanup(self, written_tests: List[Path]) -> None:
        if self.settings.CLEANUP_TEST_FILES_AFTER_RUN and written_tests:
            cleanup_test_files(written_tests, self.workspace.tests_dir)

    def build(self, request: CompileRequest) -> ToolchainResult:
        """
        Prepare the workspace and run `anchor build`.

        Raises:
            AnchorCommandError: If the build fails
        """
        with _workspace_lock:
            written_tests: List[Path] = []
            try:
                prepared = self.prepare(request, written_tests)
                return self.runner.build(prepared.project_name)
            finally:
                self._cleanup(written_tests)

    def build_and_test(self, request: CompileRequest) -> TestRunOutcome:
        """
        Prepare the workspace, build the program and run its tests.

        Test files written for this run are removed however it ends,
        including when preparation itself fails.

        Raises:
            AnchorCommandError: If the build fails
            TestRunError: If the test run fails; the parsed report is attached
        """
        with _workspace_lock:
            written_tests: List[Path] = []
            try:
                prepared = self.prepare(request, written_tests)
                build_result = self.runner.build(prepared.project_name)
                try:
                    test_result = self.runner.test(prepared.project_name)
                except AnchorCommandError as e:
                    report = parse_test_log(e.output)
                    failed_names = ", ".join(t.name for t in report.failed_tests)
                    logger.warning(
                        f"Tests failed for '{prepared.project_name}': "
                        f"{report.summary.passed} passing, {report.summary.failed} failing"
                        + (f" ({failed_names})" if failed_names else "")
                    )
                    raise TestRunError(str(e), e.result, report) from e
            finally:
                self._cleanup(written_tests)

        report = parse_test_log(test_result.output)
        logger.info(
            f"Tests finished for '{prepared.project_name}': "
            f"{report.summary.passed} passing, {report.summary.failed} failing "
            f"({report.summary.duration or 'n/a'})"
        )
        return TestRunOutcome(
            program_id=prepared.program_id,
            build=build_result,
            test=test_result,
            report=report
        )
