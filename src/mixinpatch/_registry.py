"""
Process-wide record of patches installed on shared classes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final, final

_logger: Final[logging.Logger] = logging.getLogger(__name__)


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Patch:
    target: type
    """The class whose instances observe the patch."""

    name: str

    implementation: object
    """
    Installed verbatim on ``target``. A plain function therefore becomes a
    method receiving the instance as its first argument.
    """


@final
@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class PatchRegistry:
    """
    Installs implementations on classes and remembers what it installed.

    Installing sets the attribute on the class itself, so every existing and
    future instance observes it immediately. Uninstalling deletes the
    attribute from the class namespace without restoring any earlier value:
    after two installs of the same name, one uninstall leaves nothing but
    what base classes define.

    .. note::

       Mutations are serialized with a lock, but overlapping
       :meth:`PatchSet.wrap <mixinpatch.monkey.PatchSet.wrap>` scopes on the
       same ``(target, name)`` are not supported: the first scope to exit
       removes the attribute for both.
    """

    _entries: dict[tuple[type, str], object] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    def install(self, target: type, name: str, implementation: object) -> None:
        with self._lock:
            setattr(target, name, implementation)
            self._entries[target, name] = implementation
        _logger.debug("Installed %s.%s", target.__qualname__, name)

    def uninstall(self, target: type, name: str) -> None:
        with self._lock:
            self._entries.pop((target, name), None)
            if name not in vars(target):
                return
            delattr(target, name)
        _logger.debug("Uninstalled %s.%s", target.__qualname__, name)

    def installed(self, target: type, name: str) -> object | None:
        """Return the implementation currently recorded for ``target.name``, if any."""
        with self._lock:
            return self._entries.get((target, name))

    def __iter__(self) -> Iterator[Patch]:
        with self._lock:
            entries = tuple(self._entries.items())
        for (target, name), implementation in entries:
            yield Patch(target=target, name=name, implementation=implementation)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


DEFAULT_REGISTRY: Final[PatchRegistry] = PatchRegistry()
"""The registry shared by the module-level functions of :mod:`mixinpatch.monkey`."""
