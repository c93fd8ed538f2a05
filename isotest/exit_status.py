"""
Module providing exit status enum.
"""
from enum import Enum


class ExitStatus(Enum):
    """
    Exit codes of a test program and of each child running one test.

    A test program exits with SUCCESS when no test failed and ERROR
    otherwise. A child exits with SUCCESS after writing PASS and with ERROR
    after writing its FAIL line; any other code means it ended before
    reporting.
    """
    SUCCESS = 0
    ERROR = 1
