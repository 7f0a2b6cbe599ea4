from enum import Enum, auto


class Release(Enum):
    GUARANTEED = auto()
    """
    Patches are uninstalled on every exit path of ``PatchSet.wrap`` and ``PatchSet.activated``,
    including when the wrapped code raises.
    """

    LEGACY = auto()
    """
    Patches are uninstalled only when the wrapped code returns normally.

    A raising callback leaves the patch set active.
    """
