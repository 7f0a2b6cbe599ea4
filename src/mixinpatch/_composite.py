"""
Composite objects built by merging behaviors.

Merge semantics
===============

For each slot of a behavior, in slot order:

- A function slot is appended to the list of implementations registered under
  its name. The first function registered under a name installs a combinator
  that calls every implementation, in registration order, with the composite
  as the first argument.
- A value slot overwrites the plain attribute of the same name.

A name is either a function or an attribute for the whole life of a
composite. Offering the other kind raises
:class:`~mixinpatch.AttributeAssignedToFunctionError` or
:class:`~mixinpatch.FunctionAssignedToAttributeError`. Slots merged before
the conflicting one are kept.

Example::

    pet = create_composable()
    pet.acts_like_a(Dog)
    pet.acts_like_a(Cat)
    pet.speak()  # runs Dog.speak, then Cat.speak
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Final, final

from mixinpatch._behavior import Behavior, Slot, SlotKind, as_behavior
from mixinpatch._errors import (
    AttributeAssignedToFunctionError,
    FunctionAssignedToAttributeError,
)

_logger: Final[logging.Logger] = logging.getLogger(__name__)

_PRIVATE_FIELDS: Final = frozenset(("_slots", "_composed_functions"))


@final
class Composite:
    """
    An open object whose slots come from merged behaviors.

    Slots are reachable both as attributes and as items. Names that collide
    with :class:`Composite`'s own methods are only reachable as items.
    """

    __slots__ = ("_slots", "_composed_functions", "__weakref__")

    _slots: dict[str, object]
    """Exposed slots in first-merge order: plain values and combinators."""

    _composed_functions: dict[str, list[Callable[..., object]]]
    """Implementations behind each combinator, in registration order."""

    def __init__(self) -> None:
        object.__setattr__(self, "_slots", {})
        object.__setattr__(self, "_composed_functions", {})

    def acts_like_a(
        self, descriptor: Behavior | Mapping[str, object] | type, /
    ) -> None:
        """
        Merge a behavior into this composite.

        :param descriptor: A :class:`Behavior`, a mapping of slot names to
            values, or a class body (see :func:`~mixinpatch.behavior`).
        :raises AttributeAssignedToFunctionError: A function slot names an
            existing plain attribute.
        :raises FunctionAssignedToAttributeError: A value slot names an
            existing function.
        """
        merged = as_behavior(descriptor)
        for slot in merged:
            self._merge_slot(slot, behavior_name=merged.name)

    def composed_functions(self, name: str, /) -> tuple[Callable[..., object], ...]:
        """Return the implementations registered under ``name``, in call order."""
        return tuple(self._composed_functions.get(name, ()))

    def _merge_slot(self, slot: Slot, *, behavior_name: str | None) -> None:
        match slot.kind:
            case SlotKind.FUNCTION:
                if slot.name in self._slots and slot.name not in self._composed_functions:
                    raise AttributeAssignedToFunctionError(
                        name=slot.name, behavior=behavior_name
                    )
                implementations = self._composed_functions.get(slot.name)
                if implementations is None:
                    self._composed_functions[slot.name] = [slot.value]
                    self._slots[slot.name] = self._fan_out(slot.name)
                else:
                    implementations.append(slot.value)
                _logger.debug(
                    "Composed function %r from %r (%d implementations)",
                    slot.name,
                    behavior_name,
                    len(self._composed_functions[slot.name]),
                )
            case SlotKind.VALUE:
                self._assign_attribute(slot.name, slot.value, behavior_name=behavior_name)

    def _assign_attribute(
        self, name: str, value: object, *, behavior_name: str | None
    ) -> None:
        if name in self._composed_functions:
            raise FunctionAssignedToAttributeError(name=name, behavior=behavior_name)
        self._slots[name] = value
        _logger.debug("Assigned attribute %r from %r", name, behavior_name)

    def _fan_out(self, name: str) -> Callable[..., None]:
        implementations = self._composed_functions[name]

        def combinator(*args: object, **kwargs: object) -> None:
            # Snapshot: implementations merged during this call run next time.
            for implementation in tuple(implementations):
                implementation(self, *args, **kwargs)

        combinator.__name__ = name
        combinator.__qualname__ = f"{type(self).__qualname__}.{name}"
        return combinator

    def __getitem__(self, key: str) -> object:
        return self._slots[key]

    def __getattr__(self, key: str) -> object:
        if key in _PRIVATE_FIELDS:
            raise AttributeError(name=key, obj=self)
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(
                f"{type(self).__name__!r} object has no slot {key!r}", name=key, obj=self
            ) from e

    def __setattr__(self, key: str, value: object) -> None:
        if key in _PRIVATE_FIELDS:
            raise AttributeError(f"{key!r} is read-only")
        self._assign_attribute(key, value, behavior_name=None)

    def __delattr__(self, key: str) -> None:
        raise AttributeError(f"Cannot remove slot {key!r}: composition is append-only")

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __dir__(self) -> list[str]:
        return [*super().__dir__(), *self._slots]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self._slots)})"


def create_composable() -> Composite:
    """Create an empty :class:`Composite`."""
    return Composite()
