"""
Command line configuration of a test program.
"""

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from isotest.errors import InvalidArgument
from isotest.test_identity import TestIdentity


DEFAULT_TIMEOUT_MS: int = 5000


class _OptionParser(argparse.ArgumentParser):
    """
    ArgumentParser reporting errors with InvalidArgument instead of exiting.
    """

    def error(self, message: str) -> None:  # type: ignore[override]
        raise InvalidArgument(message)


def _timeout_ms(text: str) -> int:
    value = text.strip()
    if not value.isdigit():
        raise argparse.ArgumentTypeError(f"invalid timeout \"{text}\"")
    return int(value)


def _non_empty(text: str) -> str:
    if not text.strip():
        raise argparse.ArgumentTypeError("argument must not be empty")
    return text


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    """
    Build the parser of the harness options.

    Parameters
    ----------
    prog : str | None
        Program name shown in usage messages

    Returns
    -------
    argparse.ArgumentParser
        Parser raising InvalidArgument on errors
    """
    parser = _OptionParser(
        prog=prog,
        description="Run the tests of this program, each in its own process",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-A",
        dest="arguments",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a named test argument (repeatable)",
    )
    parser.add_argument(
        "-d",
        "--debug",
        "--run-directly",
        dest="run_directly",
        action="store_true",
        help="Run tests in this process instead of a child process",
    )
    parser.add_argument(
        "-l",
        "--log-file",
        type=_non_empty,
        help="Append test results to FILE as well as the console",
        metavar="FILE",
    )
    parser.add_argument(
        "-r",
        "--run",
        dest="selection",
        action="append",
        default=[],
        type=_non_empty,
        metavar="GROUP.SUBGROUP.N",
        help="Run only the given test (repeatable)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        dest="timeout_ms",
        type=_timeout_ms,
        default=DEFAULT_TIMEOUT_MS,
        metavar="MS",
        help=f"Per-test timeout in milliseconds (default: {DEFAULT_TIMEOUT_MS})",
    )
    parser.add_argument(
        "-s",
        "--spawn",
        action="store_true",
        help="Run each test by re-invoking this program instead of forking",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    # Set for re-invoked children; the parent has already written the test name
    parser.add_argument(
        "--no-prefix",
        dest="prefix",
        action="store_false",
        help=argparse.SUPPRESS,
    )
    return parser


@dataclass
class RunConfiguration:
    """
    Options a harness is constructed with.

    Attributes
    ----------
    exec_path : Path
        Path of the test program (``argv[0]``)
    log_file : Path | None
        File receiving a copy of all results
    run_directly : bool
        Run tests in-process, without isolation
    timeout_ms : int
        Per-test timeout in milliseconds
    selection : list[str]
        Raw ``-r`` values
    arguments : list[str]
        Raw ``-A`` values
    spawn : bool
        Isolate tests by re-invoking the program rather than forking
    verbose : bool
        Report process handling details
    prefix : bool
        Write the test name before its outcome
    """
    exec_path: Path
    log_file: Path | None = None
    run_directly: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    selection: list[str] = field(default_factory=list)
    arguments: list[str] = field(default_factory=list)
    spawn: bool = False
    verbose: bool = False
    prefix: bool = True

    @property
    def timeout(self) -> float:
        """
        Per-test timeout in seconds.
        """
        return self.timeout_ms / 1000.0


    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> "RunConfiguration":
        """
        Parse a full argument vector.

        Parameters
        ----------
        argv : Sequence[str]
            Program path followed by the options

        Returns
        -------
        RunConfiguration
            The parsed configuration

        Raises
        ------
        InvalidArgument
            If an option is unknown or its value is malformed
        """
        if not argv:
            raise InvalidArgument("empty argument vector")
        exec_path = Path(argv[0])
        args = build_parser(prog=exec_path.name).parse_args(list(argv[1:]))
        return cls(
            exec_path=exec_path,
            log_file=Path(args.log_file) if args.log_file else None,
            run_directly=args.run_directly,
            timeout_ms=args.timeout_ms,
            selection=list(args.selection),
            arguments=list(args.arguments),
            spawn=args.spawn,
            verbose=args.verbose,
            prefix=args.prefix,
        )


    def to_child_argv(self, identity: TestIdentity) -> list[str]:
        """
        Options for a re-invoked program that runs exactly one test.

        Parameters
        ----------
        identity : TestIdentity
            Test the child runs

        Returns
        -------
        list[str]
            Options, without the program path
        """
        argv: list[str] = []
        if self.log_file is not None:
            argv += ["-l", str(self.log_file)]
        for assignment in self.arguments:
            argv += ["-A", assignment]
        argv += ["-t", str(self.timeout_ms), "-d", "--no-prefix", "-r", str(identity)]
        return argv
