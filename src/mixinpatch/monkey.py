"""
Global and scoped monkey-patching of shared classes.

The module-level :func:`patch` and :func:`unpatch` change a class for every
caller at once and are dangerous to use directly. :func:`create` returns a
:class:`PatchSet` that groups patches so they can be applied and removed as
a unit, or only for the duration of a call.

Example::

    counting = monkey.create()
    counting.register_patch(Number, "times", times)

    def count_to_ten():
        Number(10).times(increment)

    counting.wrap(count_to_ten)  # Number.times exists only inside the call
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Final, Self, TypeVar, final

from mixinpatch._registry import DEFAULT_REGISTRY, Patch, PatchRegistry
from mixinpatch.config import Release

_logger: Final[logging.Logger] = logging.getLogger(__name__)

T = TypeVar("T")


def patch(target: type, name: str, implementation: object) -> None:
    """Install ``implementation`` as ``target.name``, replacing whatever was there."""
    DEFAULT_REGISTRY.install(target, name, implementation)


def unpatch(target: type, name: str) -> None:
    """Delete ``target.name``. Does nothing if ``target`` does not define ``name`` itself."""
    DEFAULT_REGISTRY.uninstall(target, name)


@final
@dataclass(kw_only=True, slots=True, weakref_slot=True, eq=False)
class PatchSet:
    """
    An ordered list of patches that are activated and deactivated together.

    Registration has no effect until :meth:`activate`. Whether the set is
    active is not tracked: activating twice re-installs every patch, and
    deactivating twice is harmless.
    """

    release: Release = Release.GUARANTEED
    registry: PatchRegistry = DEFAULT_REGISTRY
    _patches: list[Patch] = field(default_factory=list, init=False, repr=False)

    @property
    def patches(self) -> tuple[Patch, ...]:
        return tuple(self._patches)

    def register_patch(self, target: type, name: str, implementation: object) -> None:
        self._patches.append(
            Patch(target=target, name=name, implementation=implementation)
        )

    def activate(self) -> None:
        """
        Install every patch in registration order; later patches of the same name win.

        If a patch cannot be installed, the patches installed before it are
        uninstalled again and the error propagates.
        """
        installed: list[Patch] = []
        try:
            for registered in self._patches:
                self.registry.install(
                    registered.target, registered.name, registered.implementation
                )
                installed.append(registered)
        except BaseException:
            for registered in installed:
                self.registry.uninstall(registered.target, registered.name)
            raise
        _logger.debug("Activated %d patches", len(self._patches))

    def deactivate(self) -> None:
        """
        Uninstall every patch in registration order.

        Two patches of the same name are both removed, not unwound one at a time.
        """
        for registered in self._patches:
            self.registry.uninstall(registered.target, registered.name)
        _logger.debug("Deactivated %d patches", len(self._patches))

    @contextmanager
    def activated(self) -> Iterator[Self]:
        """
        Keep the patch set active for the body of a ``with`` statement.

        With :attr:`Release.LEGACY`, an exception escaping the body leaves the
        patches installed.
        """
        self.activate()
        match self.release:
            case Release.GUARANTEED:
                try:
                    yield self
                finally:
                    self.deactivate()
            case Release.LEGACY:
                try:
                    yield self
                except BaseException:
                    _logger.warning(
                        "Patch set left active after an exception: %s",
                        ", ".join(
                            f"{registered.target.__qualname__}.{registered.name}"
                            for registered in self._patches
                        ),
                    )
                    raise
                self.deactivate()

    def wrap(self, callback: Callable[[], T]) -> T:
        """Call ``callback`` with the patch set active and return its result."""
        with self.activated():
            return callback()


def create(
    *, release: Release = Release.GUARANTEED, registry: PatchRegistry = DEFAULT_REGISTRY
) -> PatchSet:
    """Create an empty :class:`PatchSet`."""
    return PatchSet(release=release, registry=registry)
