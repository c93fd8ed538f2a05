"""
Tests of isotest/test_identity.py
"""

import pytest

from isotest.errors import DuplicateTestIdentity, InvalidArgument
from isotest.test_identity import TestIdentity, TestRegistry, parse_test_number


@pytest.fixture
def registry() -> TestRegistry:
    """
    Returns registry used in tests.
    """
    return TestRegistry("strings")


def test_identity_str() -> None:
    """
    Tests TestIdentity.__str__.
    Verify that it joins group, subgroup and number with dots.
    """
    identity = TestIdentity("strings", "trim", 3)

    assert str(identity) == "strings.trim.3"
    assert identity.key == ("trim", 3)


def test_identity_ordering() -> None:
    """
    Tests TestIdentity ordering.
    Verify that identities sort by subgroup, then number.
    """
    identities = [
        TestIdentity("g", "b", 1),
        TestIdentity("g", "a", 10),
        TestIdentity("g", "a", 2),
    ]

    assert [str(i) for i in sorted(identities)] == ["g.a.2", "g.a.10", "g.b.1"]


def test_identity_rejects_negative_number() -> None:
    """
    Tests TestIdentity validation.
    Verify that negative and non-integer numbers are rejected.
    """
    with pytest.raises(ValueError):
        TestIdentity("g", "s", -1)
    with pytest.raises(TypeError):
        TestIdentity("g", "s", "1")  # type: ignore[arg-type]


@pytest.mark.parametrize("text, expected", [("0", 0), (" 42 ", 42)])
def test_parse_test_number(text: str, expected: int) -> None:
    """
    Tests parse_test_number.
    Verify that unsigned decimal numbers are accepted.
    """
    assert parse_test_number(text) == expected


@pytest.mark.parametrize("text", ["", "  ", "-1", "x", "1.5"])
def test_parse_test_number_invalid(text: str) -> None:
    """
    Tests parse_test_number with malformed input.
    Verify that it raises InvalidArgument.
    """
    with pytest.raises(InvalidArgument):
        parse_test_number(text)


def test_select_full_name(registry: TestRegistry) -> None:
    """
    Tests select with group.subgroup.number.
    Verify that the group prefix is dropped and the registry turns selective.
    """
    identity = registry.select("strings.trim.3")

    assert identity == TestIdentity("strings", "trim", 3)
    assert registry.selective is True
    assert registry.selection == {("trim", 3)}


def test_select_splits_on_last_dot(registry: TestRegistry) -> None:
    """
    Tests select with a subgroup containing dots.
    Verify that only the field after the last dot is the number.
    """
    registry.select("strings.utf8.decode.7")
    registry.select("trim.1")

    assert registry.selection == {("utf8.decode", 7), ("trim", 1)}


@pytest.mark.parametrize("spec", ["strings.trim.", "strings.trim.x", "trim", "strings.trim.-2"])
def test_select_invalid(registry: TestRegistry, spec: str) -> None:
    """
    Tests select with a malformed number.
    Verify that it raises InvalidArgument and selects nothing.
    """
    with pytest.raises(InvalidArgument):
        registry.select(spec)

    assert registry.selective is False
    assert registry.selection == set()


def test_admit_without_selection(registry: TestRegistry) -> None:
    """
    Tests admit when no test is selected.
    Verify that every new test runs and is recorded.
    """
    assert registry.admit("trim", 1) is True
    assert registry.admit("trim", 2) is True
    assert registry.have_run == {("trim", 1), ("trim", 2)}


def test_admit_duplicate(registry: TestRegistry) -> None:
    """
    Tests admit with a test that already ran.
    Verify that it raises DuplicateTestIdentity.
    """
    registry.admit("trim", 1)

    with pytest.raises(DuplicateTestIdentity, match="strings.trim.1"):
        registry.admit("trim", 1)


def test_admit_with_selection(registry: TestRegistry) -> None:
    """
    Tests admit while a selection is active.
    Verify that unselected tests are skipped without any change of state,
    and selected tests consume their selection entry.
    """
    registry.select("strings.trim.2")
    registry.select("strings.trim.5")

    assert registry.admit("trim", 1) is False
    assert registry.have_run == set()
    assert registry.selection == {("trim", 2), ("trim", 5)}

    assert registry.admit("trim", 2) is True
    assert registry.have_run == {("trim", 2)}
    assert registry.selection == {("trim", 5)}


def test_unrun(registry: TestRegistry) -> None:
    """
    Tests unrun.
    Verify that it lists selected tests never admitted, in order.
    """
    registry.select("strings.pad.4")
    registry.select("strings.trim.2")
    registry.select("strings.pad.1")
    registry.admit("pad", 4)

    assert [str(i) for i in registry.unrun()] == ["strings.pad.1", "strings.trim.2"]
