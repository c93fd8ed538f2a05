"""
Tests of isotest/run_configuration.py
"""

from pathlib import Path

import pytest

from isotest.errors import InvalidArgument
from isotest.run_configuration import DEFAULT_TIMEOUT_MS, RunConfiguration, build_parser
from isotest.test_identity import TestIdentity


def test_from_argv_defaults() -> None:
    """
    Tests from_argv without options.
    Verify the default configuration.
    """
    config = RunConfiguration.from_argv(["/bin/tests"])

    assert config.exec_path == Path("/bin/tests")
    assert config.log_file is None
    assert config.run_directly is False
    assert config.timeout_ms == DEFAULT_TIMEOUT_MS == 5000
    assert config.timeout == 5.0
    assert config.selection == []
    assert config.arguments == []
    assert config.spawn is False
    assert config.verbose is False


def test_from_argv_all_options() -> None:
    """
    Tests from_argv with every option.
    Verify that repeatable options accumulate.
    """
    config = RunConfiguration.from_argv([
        "tests",
        "-A", "a=1",
        "-A", "b=2",
        "-d",
        "-l", "out.log",
        "-r", "g.s.1",
        "--run", "g.s.2",
        "-t", "250",
        "--spawn",
        "-v",
    ])

    assert config.arguments == ["a=1", "b=2"]
    assert config.run_directly is True
    assert config.log_file == Path("out.log")
    assert config.selection == ["g.s.1", "g.s.2"]
    assert config.timeout_ms == 250
    assert config.timeout == 0.25
    assert config.spawn is True
    assert config.verbose is True


@pytest.mark.parametrize("flag", ["-d", "--debug", "--run-directly"])
def test_run_directly_aliases(flag: str) -> None:
    """
    Tests the run-directly option aliases.
    Verify that each one disables isolation.
    """
    assert RunConfiguration.from_argv(["tests", flag]).run_directly is True


@pytest.mark.parametrize("argv", [
    ["tests", "-t", "soon"],
    ["tests", "-t", "-5"],
    ["tests", "--timeout"],
    ["tests", "-l", ""],
    ["tests", "-r", ""],
    ["tests", "--no-such-option"],
    ["tests", "stray"],
    [],
])
def test_from_argv_invalid(argv: list[str]) -> None:
    """
    Tests from_argv with malformed command lines.
    Verify that it raises InvalidArgument instead of exiting.
    """
    with pytest.raises(InvalidArgument):
        RunConfiguration.from_argv(argv)


def test_to_child_argv() -> None:
    """
    Tests to_child_argv.
    Verify that a child gets the log, arguments and timeout, and runs only
    the one test in-process.
    """
    config = RunConfiguration.from_argv(
        ["tests", "-l", "out.log", "-A", "x=1", "-t", "100", "-r", "g.s.9"]
    )

    argv = config.to_child_argv(TestIdentity("g", "s", 1))

    assert argv == [
        "-l", "out.log",
        "-A", "x=1",
        "-t", "100",
        "-d", "--no-prefix", "-r", "g.s.1",
    ]


def test_to_child_argv_without_log() -> None:
    """
    Tests to_child_argv without a log file.
    Verify that no -l option is passed.
    """
    config = RunConfiguration.from_argv(["tests"])

    assert "-l" not in config.to_child_argv(TestIdentity("g", "s", 1))


def test_no_prefix() -> None:
    """
    Tests the --no-prefix option of re-invoked children.
    Verify that it clears prefix and is left out of the help text.
    """
    assert RunConfiguration.from_argv(["tests"]).prefix is True
    assert RunConfiguration.from_argv(["tests", "--no-prefix"]).prefix is False
    assert "--no-prefix" not in build_parser("tests").format_help()
