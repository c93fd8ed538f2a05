"""
Exceptions raised by the test harness.

``TestFailure`` is raised by test bodies to fail a test. Every other class
here derives from ``HarnessError`` and denotes a broken suite or environment:
they abort the whole run instead of failing a single test.
"""


class TestFailure(Exception):
    """
    Explicit test failure raised from a test body.

    The message (possibly empty) ends up in the ``FAIL (...)`` line.
    """
    # Prevent pytest from collecting this as a test class
    __test__ = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message: str = message

    @classmethod
    def format(cls, fmt: str, *args: object) -> "TestFailure":
        """
        Build a failure whose message is ``fmt % args``.

        Parameters
        ----------
        fmt : str
            printf-style format string
        *args : object
            Values substituted into ``fmt``

        Returns
        -------
        TestFailure
            The new failure, ready to raise
        """
        return cls(fmt % args if args else fmt)

    def __str__(self) -> str:
        return self.message


class HarnessError(Exception):
    """
    Base class of fatal harness errors.
    """


class InvalidArgument(HarnessError):
    """
    A command line option or its value is malformed.
    """


class DuplicateTestIdentity(HarnessError):
    """
    The same test identity was run twice in one harness.
    """


class LogOpenFailure(HarnessError):
    """
    The log file could not be opened.
    """


class ProcessCreationFailure(HarnessError):
    """
    A child process for a test could not be created.
    """


class ProcessControlFailure(HarnessError):
    """
    Waiting for or signalling a test process failed.
    """
