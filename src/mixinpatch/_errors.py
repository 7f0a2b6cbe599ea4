"""
Errors raised while merging behaviors into a composite.
"""

from __future__ import annotations


class CompositionError(TypeError):
    """
    A behavior disagrees with the composite about whether a slot is a function or data.

    Raised from :meth:`Composite.acts_like_a` after the slots preceding the
    offending one have already been merged.
    """

    name: str
    """The slot name that caused the conflict."""

    behavior: str | None
    """Name of the behavior being merged, if known."""

    def __init__(self, message: str, *, name: str, behavior: str | None = None) -> None:
        super().__init__(message)
        self.name = name
        self.behavior = behavior


class FunctionAssignedToAttributeError(CompositionError):
    """A plain value was offered for a name the composite already composes as a function."""

    def __init__(self, *, name: str, behavior: str | None = None) -> None:
        super().__init__(
            f"{name!r} is already composed as a function "
            f"and cannot be redefined as an attribute"
            + (f" by {behavior!r}" if behavior is not None else ""),
            name=name,
            behavior=behavior,
        )


class AttributeAssignedToFunctionError(CompositionError):
    """A callable was offered for a name the composite already holds as a plain attribute."""

    def __init__(self, *, name: str, behavior: str | None = None) -> None:
        super().__init__(
            f"{name!r} is already defined as an attribute "
            f"and cannot be composed as a function"
            + (f" by {behavior!r}" if behavior is not None else ""),
            name=name,
            behavior=behavior,
        )
