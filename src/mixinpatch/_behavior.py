"""
Behavior descriptors: named, ordered bags of slots used as units of mixin composition.

A behavior is an explicit sequence of tagged :class:`Slot` records rather than
an arbitrary object, so the order in which slots are merged is always the
order in which they were declared.

Example::

    @behavior
    class Dog:
        name = "Ludo"

        def speak(self):
            self.bark()

        def bark(self):
            return "Woof!"

    Personable = Behavior.from_mapping(
        {"greet": lambda self, who: f"Hello, {who}!"}, name="Personable"
    )
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Final, final


class SlotKind(Enum):
    FUNCTION = auto()
    """
    The slot is composed into a combinator together with every other function of the same name.
    """

    VALUE = auto()
    """
    The slot is stored verbatim; later values overwrite earlier ones.
    """


def classify(value: object) -> SlotKind:
    return SlotKind.FUNCTION if callable(value) else SlotKind.VALUE


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Slot:
    name: str
    kind: SlotKind
    value: object

    def __post_init__(self) -> None:
        if self.kind is SlotKind.FUNCTION and not callable(self.value):
            raise TypeError(
                f"Function slot {self.name!r} must be callable, "
                f"got {type(self.value).__name__}"
            )


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Behavior:
    """
    An immutable, ordered collection of slots.

    The same behavior may be merged into any number of composites.
    """

    name: str | None
    slots: tuple[Slot, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for slot in self.slots:
            if slot.name in seen:
                raise ValueError(f"Duplicate slot {slot.name!r} in behavior {self.name!r}")
            seen.add(slot.name)

    def __iter__(self) -> Iterator[Slot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    @staticmethod
    def from_mapping(mapping: Mapping[str, object], *, name: str | None = None) -> Behavior:
        """
        Create a behavior from a mapping, classifying each value with :func:`callable`.

        :param mapping: Slot names to functions or plain values.
        :param name: Optional name used in error messages and logs.
        :return: A behavior whose slots follow the mapping's iteration order.
        """
        slots: list[Slot] = []
        for slot_name, value in mapping.items():
            if not isinstance(slot_name, str):
                raise TypeError(
                    f"Slot name must be a string, got {type(slot_name).__name__}"
                )
            slots.append(Slot(name=slot_name, kind=classify(value), value=value))
        return Behavior(name=name, slots=tuple(slots))


_UNSUPPORTED_DESCRIPTORS: Final = (staticmethod, classmethod, property)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def behavior(cls: type, /) -> Behavior:
    """
    Class decorator that converts a class body into a :class:`Behavior`.

    Every non-dunder entry of the class body becomes a slot, in definition order.
    Functions receive the composite as their first argument when invoked.
    Base classes are NOT consulted; composition is flat.

    Only plain functions and plain values are supported.

    :raises TypeError: If the class body contains a ``staticmethod``,
        ``classmethod`` or ``property``.
    """
    namespace = {
        key: value for key, value in vars(cls).items() if not _is_dunder(key)
    }
    for key, value in namespace.items():
        if isinstance(value, _UNSUPPORTED_DESCRIPTORS):
            raise TypeError(
                f"Behavior {cls.__name__!r} cannot contain a "
                f"{type(value).__name__} ({key!r}); use a plain function"
            )
    return Behavior.from_mapping(namespace, name=cls.__name__)


def as_behavior(descriptor: Behavior | Mapping[str, object] | type) -> Behavior:
    """Coerce anything :meth:`Composite.acts_like_a` accepts into a :class:`Behavior`."""
    match descriptor:
        case Behavior():
            return descriptor
        case Mapping():
            return Behavior.from_mapping(descriptor)
        case type():
            return behavior(descriptor)
        case _:
            raise TypeError(
                f"Expected a Behavior, a mapping or a class, got {type(descriptor).__name__}"
            )
