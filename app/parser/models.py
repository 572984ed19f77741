"""
Data models for parsed test-runner output.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class RunSummary:
    """Aggregate counts reported by the runner's summary lines."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    duration: str = ""  # e.g. "340ms", taken from the passing line only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "duration": self.duration,
        }


@dataclass
class TestCase:
    """A single test outcome line plus any diagnostic text that followed it."""
    suite: str
    name: str
    passed: bool
    duration: str = ""
    error: str = ""  # Newline-joined diagnostic lines, empty for passing tests

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suite": self.suite,
            "name": self.name,
            "passed": self.passed,
            "error": self.error,
            "duration": self.duration,
        }


@dataclass
class TestReport:
    """Complete structured report for one test-runner invocation."""
    summary: RunSummary = field(default_factory=RunSummary)
    tests: List[TestCase] = field(default_factory=list)
    execution_logs: List[str] = field(default_factory=list)
    raw_output: str = ""

    @property
    def failed_tests(self) -> List[TestCase]:
        """Tests that were reported with a numbered (failing) marker."""
        return [t for t in self.tests if not t.passed]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names consumers expect."""
        return {
            "summary": self.summary.to_dict(),
            "tests": [t.to_dict() for t in self.tests],
            "executionLogs": list(self.execution_logs),
            "rawOutput": self.raw_output,
        }
