"""
Parser module for anchor/mocha test output.

Turns the console text of a test run into a structured pass/fail report.
"""
from app.parser.parser import parse_test_log, parse_test_case_line, is_summary_line
from app.parser.models import RunSummary, TestCase, TestReport

__all__ = [
    'parse_test_log',
    'parse_test_case_line',
    'is_summary_line',
    'RunSummary',
    'TestCase',
    'TestReport',
]
