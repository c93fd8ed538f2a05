"""
Runs a test body and turns the way it ended into a PASS/FAIL result.
"""

import traceback
from typing import Callable

from isotest.errors import TestFailure
from isotest.test_identity import TestIdentity
from isotest.test_logger import TestLogger
from isotest.test_result import TestResult


# Renders a diagnostic dump (stack trace etc.) for an unexpected exception.
ExceptionDumper = Callable[[BaseException], str]


def format_traceback(exc: BaseException) -> str:
    """
    Format the traceback of ``exc`` for inclusion in a FAIL report.

    Parameters
    ----------
    exc : BaseException
        The exception that ended a test body

    Returns
    -------
    str
        Indented traceback text
    """
    lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return "".join(
        f"    {line}\n" for chunk in lines for line in chunk.rstrip("\n").split("\n")
    )


def describe_exception(exc: BaseException) -> str:
    """
    One-line description of an unexpected exception.
    """
    text = str(exc)
    if text:
        return f"{type(exc).__name__}: {text}"
    return type(exc).__name__


class OutcomeClassifier:
    """
    Executes a test body once and classifies its outcome.

    - normal return: PASS
    - ``TestFailure``: ``FAIL (message)``, or ``FAIL`` without a message
    - any other ``Exception``: ``FAIL with exception (description):``
    - anything else raised: ``FAIL with exception:``

    The exception cases are followed by a diagnostic dump when a dumper was
    provided.
    """

    def __init__(self,
        logger: TestLogger,
        dump_exception: ExceptionDumper | None = None,
    ) -> None:
        """
        Initialize the classifier.

        Parameters
        ----------
        logger : TestLogger
            Destination of the test line
        dump_exception : ExceptionDumper | None, optional
            Renders extra diagnostics for unexpected exceptions, by default none
        """
        self._logger = logger
        self._dump_exception = dump_exception


    def classify(self,
        body: Callable[[], object],
        name: str = "",
    ) -> TestResult:
        """
        Run ``body`` and classify how it ended, without writing anything.

        ``KeyboardInterrupt`` is not classified and propagates.

        Parameters
        ----------
        body : Callable[[], object]
            Test body with its arguments already bound
        name : str, optional
            Test name stored in the result

        Returns
        -------
        TestResult
            Outcome of the body
        """
        try:
            body()
        except TestFailure as e:
            return TestResult(name, False, e.message)
        except Exception as e:
            return TestResult(
                name, False, describe_exception(e), exception=True, dump=self._dump(e)
            )
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            return TestResult(name, False, exception=True, dump=self._dump(e))
        return TestResult(name, True)


    def run(self,
        identity: TestIdentity,
        body: Callable[[], object],
        prefix: bool = True,
    ) -> TestResult:
        """
        Write the test prefix, run ``body`` and write its outcome.

        The prefix is flushed before the body runs. A supervisor writes the
        prefix itself before starting a child, which then runs with
        ``prefix=False``, so that a timeout or a signal reported by the
        parent completes the same line.

        Parameters
        ----------
        identity : TestIdentity
            Identity of the test
        body : Callable[[], object]
            Test body with its arguments already bound
        prefix : bool, optional
            Write ``group.subgroup.N: `` first, by default True

        Returns
        -------
        TestResult
            Outcome of the body
        """
        if prefix:
            self._logger.write(f"{identity}: ")
            self._logger.flush()
        try:
            result = self.classify(body, str(identity))
        except KeyboardInterrupt:
            self._logger.write_outcome("FAIL (interrupted)\n")
            self._logger.flush()
            raise
        self._logger.write_outcome(result.text)
        self._logger.flush()
        return result


    def _dump(self, exc: BaseException) -> str:
        if self._dump_exception is None:
            return ""
        return self._dump_exception(exc)
