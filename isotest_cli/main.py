#!/usr/bin/env python3
"""
CLI entry for isotest (thin wrapper).

Usage:
    isotest suite.py                 # call register(tests) from suite.py
    isotest pkg.tests:run_all        # call run_all(tests) from pkg.tests
    isotest suite.py -r strings.trim.3 -t 200
"""

import argparse
import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Callable

from isotest import __version__ as ISOTEST_VERSION
from isotest.errors import HarnessError
from isotest.exit_status import ExitStatus
from isotest.run_configuration import build_parser
from isotest.test_manager import TestManager
from isotest.test_result import Colors


DEFAULT_FUNCTION: str = "register"


def get_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Gets and returns command line arguments.

    Everything after SUITE is passed to the harness.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="isotest",
        description="isotest - Run a test suite with each test in its own process",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=build_parser(prog="isotest SUITE").format_help(),
    )
    parser.add_argument(
        "--group",
        help="Group name of the tests (default: module name of SUITE)",
    )
    parser.add_argument(
        "--no-summary",
        dest="summary",
        action="store_false",
        help="Do not print the pass/fail summary",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"isotest {ISOTEST_VERSION}",
        help="Show program's version number and exit",
    )
    parser.add_argument(
        "suite",
        help=(
            "Python file or module, optionally followed by ':FUNCTION' "
            f"(default function: {DEFAULT_FUNCTION})"
        ),
    )
    parser.add_argument(
        "options",
        nargs=argparse.REMAINDER,
        help="Harness options (see below)",
    )
    return parser.parse_args(argv)


def split_suite(suite: str) -> tuple[str, str]:
    """
    Split ``target[:function]`` into its target and function name.

    A colon directly followed by a path separator (Windows drive letters)
    is not taken as the function separator.
    """
    target, sep, function = suite.rpartition(":")
    if not sep or not function or function.startswith(("\\", "/")):
        return suite, DEFAULT_FUNCTION
    return target, function


def load_module(target: str) -> ModuleType:
    """
    Import a suite given as a file path or a module name.

    Parameters
    ----------
    target : str
        ``path/to/file.py`` or ``package.module``

    Returns
    -------
    ModuleType
        The imported module

    Raises
    ------
    ImportError
        If the module cannot be found or loaded
    """
    if target.endswith(".py"):
        path = Path(target).resolve()
        if not path.is_file():
            raise ImportError(f"no such suite file \"{target}\"")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load suite file \"{target}\"")
        module = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = module
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(target)


def load_suite(suite: str) -> tuple[str, Callable[[TestManager], object]]:
    """
    Resolve SUITE into a default group name and its registration function.
    """
    target, function = split_suite(suite)
    module = load_module(target)
    register = getattr(module, function, None)
    if not callable(register):
        raise ImportError(f"suite \"{target}\" has no function \"{function}\"")
    group = Path(target).stem if target.endswith(".py") else target.rpartition(".")[2]
    return group, register


def main(argv: list[str] | None = None) -> int:
    """
    Main function for CLI.
    """
    try:
        args = get_arguments(argv)
        default_group, register = load_suite(args.suite)
        group = args.group or default_group
        command = [
            sys.executable, "-m", "isotest_cli.main",
            "--group", group, "--no-summary", args.suite,
        ]
        with TestManager(group, [args.suite, *args.options], command=command) as tests:
            register(tests)
        if args.summary:
            return tests.print_summary()
        return tests.exit_status().value

    except KeyboardInterrupt:
        print(
            f"\n{Colors.YELLOW.value}Test execution interrupted by user{Colors.RESET.value}",
            file=sys.stderr,
        )
        return ExitStatus.ERROR.value

    except (HarnessError, ImportError) as e:
        print(f"{Colors.RED.value}error: {e}{Colors.RESET.value}", file=sys.stderr)
        return ExitStatus.ERROR.value


if __name__ == "__main__":
    sys.exit(main())
