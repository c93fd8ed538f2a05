"""
isotest - Process-isolated unit test harness.

Runs each test case of a test program in its own child process with a
timeout, and reports one PASS/FAIL line per test.
"""

__version__ = "0.1.0"

from isotest.errors import (
    DuplicateTestIdentity,
    HarnessError,
    InvalidArgument,
    LogOpenFailure,
    ProcessControlFailure,
    ProcessCreationFailure,
    TestFailure,
)
from isotest.outcome_classifier import format_traceback
from isotest.test_identity import TestIdentity
from isotest.test_manager import TestManager, main

__all__ = [
    "DuplicateTestIdentity",
    "HarnessError",
    "InvalidArgument",
    "LogOpenFailure",
    "ProcessControlFailure",
    "ProcessCreationFailure",
    "TestFailure",
    "TestIdentity",
    "TestManager",
    "format_traceback",
    "main",
]
