"""
Named run-time arguments given to a test program with ``-A name=value``.
"""

from typing import Iterator

from isotest.errors import InvalidArgument


class ArgumentStore:
    """
    Mapping of argument names to string values.

    Test bodies query it for parameters that vary between runs, for example
    the location of a data directory.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}


    def add(self, assignment: str) -> None:
        """
        Store one ``name=value`` assignment.

        The text is split at the first ``=``; ``name`` alone stores an empty
        value. A later assignment to the same name replaces the earlier one.

        Parameters
        ----------
        assignment : str
            Argument of one ``-A`` option

        Raises
        ------
        InvalidArgument
            If the name is empty
        """
        name, _, value = assignment.partition("=")
        name = name.strip()
        if not name:
            raise InvalidArgument(f"missing argument name in \"{assignment}\"")
        self._values[name] = value


    def get(self, name: str, default: str | None = None) -> str | None:
        """
        Return the value of ``name``, or ``default`` if it was not given.
        """
        return self._values.get(name, default)


    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ArgumentStore({self._values!r})"
