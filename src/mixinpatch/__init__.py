"""
mixinpatch: Mixin composition and scoped monkey-patching.

Public API
==========

Composition:
    - :func:`create_composable`
    - :class:`Composite`
    - :func:`behavior`
    - :class:`Behavior`

Errors:
    - :class:`CompositionError`
    - :class:`FunctionAssignedToAttributeError`
    - :class:`AttributeAssignedToFunctionError`

Patching (see :mod:`mixinpatch.monkey`):
    - :func:`monkey.patch`
    - :func:`monkey.unpatch`
    - :func:`monkey.create`
"""

from __future__ import annotations

from mixinpatch import monkey as monkey
from mixinpatch._behavior import Behavior as Behavior
from mixinpatch._behavior import Slot as Slot
from mixinpatch._behavior import SlotKind as SlotKind
from mixinpatch._behavior import behavior as behavior
from mixinpatch._composite import Composite as Composite
from mixinpatch._composite import create_composable as create_composable
from mixinpatch._errors import (
    AttributeAssignedToFunctionError as AttributeAssignedToFunctionError,
)
from mixinpatch._errors import CompositionError as CompositionError
from mixinpatch._errors import (
    FunctionAssignedToAttributeError as FunctionAssignedToAttributeError,
)
from mixinpatch._registry import Patch as Patch
from mixinpatch._registry import PatchRegistry as PatchRegistry
from mixinpatch.config import Release as Release
from mixinpatch.monkey import PatchSet as PatchSet
