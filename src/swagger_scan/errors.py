"""Exceptions raised while scanning a program.

Every failure aborts the scan; no partial document is returned.
"""


class ScanError(Exception):
    """Base class for all scan failures."""


class DirectiveValueError(ScanError, ValueError):
    """A directive grammar matched but its value could not be parsed."""


class UnresolvedReferenceError(ScanError):
    """A parameter, response or schema name could not be found."""

    def __init__(self, kind: str, name: str, detail: str = ""):
        self.kind = kind
        self.name = name
        message = f"unresolved {kind} {name!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnresolvedTypeError(ScanError):
    """A referenced module or declaration does not exist in the program."""


class DuplicateDefinitionError(ScanError):
    """A name that must be unique within one scan was declared twice."""
