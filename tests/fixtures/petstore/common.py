"""Shared building blocks."""


class Tag:
    """A label attached to pets."""

    # required: true
    # maxLength: 32
    label: str

    children: list["Tag"]
    """Nested tags."""
