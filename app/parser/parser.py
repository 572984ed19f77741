"""
Mocha console output parser.

Rebuilds a suite -> test case -> error detail structure from the text printed
by `anchor test` (ts-mocha with the spec reporter).
"""
import re
from typing import List, Optional

from app.constants import PASS_MARKER
from .models import RunSummary, TestCase, TestReport


# \d, \s and \w are ASCII-only in every pattern below

# Summary lines, e.g. "  12 passing (340ms)" and "  3 failing"
PASSING_PATTERN = re.compile(r'(\d+) passing \((\d+)ms\)', re.ASCII)
FAILING_PATTERN = re.compile(r'(\d+) failing', re.ASCII)

# Suite header: exactly two leading spaces and one bare word, e.g. "  mata"
SUITE_PATTERN = re.compile(r'^\s{2}(\w+)$', re.ASCII)

# Test case: four leading spaces, "✔" or "<n>)", description, optional "(<n>ms)"
TEST_CASE_PATTERN = re.compile(
    r'^\s{4}(' + re.escape(PASS_MARKER) + r'|\d+\))\s+(.+?)(?:\s+\((\d+ms)\))?$',
    re.ASCII
)


def is_summary_line(line: str) -> bool:
    """Check if a line reports passing or failing totals."""
    return bool(PASSING_PATTERN.search(line) or FAILING_PATTERN.search(line))


def parse_summary_line(line: str, summary: RunSummary) -> None:
    """
    Fold a summary line into the running totals.

    Counts overwrite passed/failed and accumulate into total; the duration
    only comes from the passing line. Non-summary lines are ignored.
    """
    match = PASSING_PATTERN.search(line)
    if match:
        count = int(match.group(1))
        summary.passed = count
        summary.duration = f"{match.group(2)}ms"
        summary.total += count

    match = FAILING_PATTERN.search(line)
    if match:
        count = int(match.group(1))
        summary.failed = count
        summary.total += count


def parse_test_case_line(line: str, suite: str) -> Optional[TestCase]:
    """
    Parse a four-space indented test line.

    Examples:
        "    ✔ initializes (120ms)" -> passed, duration "120ms"
        "    1) rejects bad input"  -> failed, no duration

    Returns:
        TestCase with an empty error, or None if the line is not a test case
    """
    match = TEST_CASE_PATTERN.match(line)
    if not match:
        return None

    marker, name, duration = match.groups()
    return TestCase(
        suite=suite,
        name=name.strip(),
        passed=marker == PASS_MARKER,
        duration=duration or "",
    )


def parse_test_log(log: str) -> TestReport:
    """
    Parse the combined console output of a test run.

    Never raises: text without any recognizable markers yields a report with
    zero counts and no tests.

    Args:
        log: Raw stdout/stderr text of the runner

    Returns:
        TestReport with summary counts, tests in order of appearance,
        the split lines and the original text
    """
    lines = log.split('\n')
    summary = RunSummary()
    tests: List[TestCase] = []

    current_suite = ""
    current_test: Optional[TestCase] = None
    error_lines: List[str] = []
    collecting_error = False

    for i, line in enumerate(lines):
        # Totals are read from every line, whatever else it turns out to be
        parse_summary_line(line, summary)

        suite_match = SUITE_PATTERN.match(line)
        if suite_match:
            current_suite = suite_match.group(1)
            continue

        test_case = parse_test_case_line(line, current_suite)
        if test_case:
            if current_test is not None:
                current_test.error = '\n'.join(error_lines)
                tests.append(current_test)
            current_test = test_case
            error_lines = []
            collecting_error = not test_case.passed
            continue

        if not collecting_error or current_test is None:
            continue

        if is_summary_line(line):
            collecting_error = False
            continue

        if not line.strip():
            # A blank line right after another blank line ends the error block
            if i > 0 and not lines[i - 1].strip():
                collecting_error = False
            continue

        error_lines.append(line)

    if current_test is not None:
        current_test.error = '\n'.join(error_lines)
        tests.append(current_test)

    return TestReport(
        summary=summary,
        tests=tests,
        execution_logs=lines,
        raw_output=log,
    )
