"""
Parser for declarative patch files (YAML/JSON/TOML).

A patch file declares patches and behaviors as data. Python objects are named
by ``"module:qualified.name"`` references and imported when the file is
parsed::

    patches:
      - target: counting:Number
        name: up_to
        implementation: counting:up_to

    behaviors:
      Dog:
        name: Ludo
        speak: {function: pets:speak}

Patches become a :class:`~mixinpatch.monkey.PatchSet` via
:meth:`PatchFile.create_patch_set`; behaviors become
:class:`~mixinpatch.Behavior` objects ready for ``acts_like_a``.
"""

from __future__ import annotations

import importlib
import json
import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final, TypeAlias, final

import yaml

from mixinpatch._behavior import Behavior, Slot, SlotKind
from mixinpatch._registry import DEFAULT_REGISTRY, Patch, PatchRegistry
from mixinpatch.config import Release
from mixinpatch.monkey import PatchSet

_logger: Final[logging.Logger] = logging.getLogger(__name__)

# JSON-compatible type aliases
JsonScalar: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonScalar | list["JsonValue"] | dict[str, "JsonValue"]

PATCH_FILE_EXTENSIONS: Final = (
    ".patch.yaml",
    ".patch.yml",
    ".patch.json",
    ".patch.toml",
)

FUNCTION_KEY: Final = "function"


@final
@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class PatchFile:
    """Patches and behaviors declared by a single file."""

    patches: tuple[Patch, ...]
    """Patches in declaration order."""

    behaviors: Mapping[str, Behavior]
    """Behaviors by name, in declaration order."""

    source_file: Path
    """Path to the source file for error reporting."""

    def create_patch_set(
        self,
        *,
        release: Release = Release.GUARANTEED,
        registry: PatchRegistry = DEFAULT_REGISTRY,
    ) -> PatchSet:
        """Register every declared patch, in order, into a new inactive patch set."""
        patch_set = PatchSet(release=release, registry=registry)
        for declared in self.patches:
            patch_set.register_patch(
                declared.target, declared.name, declared.implementation
            )
        return patch_set


def parse_reference(reference: str) -> object:
    """
    Import the object named by a ``"module:qualified.name"`` reference.

    :param reference: The reference string.
    :return: The referenced object.
    :raises ValueError: If the reference is not of the form ``module:name``.
    :raises ImportError: If the module cannot be imported.
    :raises AttributeError: If the module has no such attribute.
    """
    module_name, separator, qualified_name = reference.partition(":")
    if not separator or not module_name or not qualified_name:
        raise ValueError(
            f"Reference must look like 'module:qualified.name', got {reference!r}"
        )
    result: object = importlib.import_module(module_name)
    for attribute in qualified_name.split("."):
        result = getattr(result, attribute)
    return result


def _expect_reference(value: JsonValue, *, what: str, source_file: Path) -> object:
    if not isinstance(value, str):
        raise ValueError(
            f"{source_file}: {what} must be a reference string, "
            f"got {type(value).__name__}"
        )
    return parse_reference(value)


def parse_patch(value: JsonValue, *, source_file: Path) -> Patch:
    """
    Parse one entry of the ``patches`` list.

    :raises ValueError: If the entry is not a mapping with exactly
        ``target``, ``name`` and ``implementation``.
    """
    if not isinstance(value, dict):
        raise ValueError(
            f"{source_file}: patch entry must be a mapping, got {type(value).__name__}"
        )
    if set(value) != {"target", "name", "implementation"}:
        raise ValueError(
            f"{source_file}: patch entry must have exactly the keys "
            f"'target', 'name' and 'implementation', got {sorted(value)}"
        )
    target = _expect_reference(value["target"], what="target", source_file=source_file)
    if not isinstance(target, type):
        raise ValueError(
            f"{source_file}: patch target {value['target']!r} is not a class"
        )
    name = value["name"]
    if not isinstance(name, str):
        raise ValueError(
            f"{source_file}: patch name must be a string, got {type(name).__name__}"
        )
    implementation = _expect_reference(
        value["implementation"], what="implementation", source_file=source_file
    )
    return Patch(target=target, name=name, implementation=implementation)


def parse_slot(name: str, value: JsonValue, *, source_file: Path) -> Slot:
    """
    Parse one slot of a behavior.

    ``{function: "module:name"}`` is a function slot; any other value,
    including other mappings, is stored as data.

    :raises ValueError: If the slot name is not a string.
    """
    if not isinstance(name, str):
        raise ValueError(
            f"{source_file}: slot name must be a string, got {type(name).__name__}"
        )
    if isinstance(value, dict) and set(value) == {FUNCTION_KEY}:
        function = _expect_reference(
            value[FUNCTION_KEY], what=f"function {name!r}", source_file=source_file
        )
        if not callable(function):
            raise ValueError(
                f"{source_file}: function {name!r} refers to a non-callable "
                f"{type(function).__name__}"
            )
        return Slot(name=name, kind=SlotKind.FUNCTION, value=function)
    return Slot(name=name, kind=SlotKind.VALUE, value=value)


def parse_behavior(name: str, value: JsonValue, *, source_file: Path) -> Behavior:
    if not isinstance(name, str):
        raise ValueError(
            f"{source_file}: behavior name must be a string, got {type(name).__name__}"
        )
    if not isinstance(value, dict):
        raise ValueError(
            f"{source_file}: behavior {name!r} must be a mapping, "
            f"got {type(value).__name__}"
        )
    return Behavior(
        name=name,
        slots=tuple(
            parse_slot(slot_name, slot_value, source_file=source_file)
            for slot_name, slot_value in value.items()
        ),
    )


def load_patch_data(file_path: Path) -> dict[str, JsonValue]:
    """
    Read a patch file and return its top-level mapping.

    :raises ValueError: If the file format is not recognized or the top level
        is not a mapping.
    """
    content = file_path.read_text(encoding="utf-8")

    # Determine format from the full filename pattern
    name = file_path.name.lower()
    if name.endswith(".patch.yaml") or name.endswith(".patch.yml"):
        data = yaml.safe_load(content)
    elif name.endswith(".patch.json"):
        data = json.loads(content)
    elif name.endswith(".patch.toml"):
        data = tomllib.loads(content)
    else:
        raise ValueError(
            f"Unrecognized patch file format: {file_path.name}. "
            f"Expected one of {', '.join(PATCH_FILE_EXTENSIONS)}"
        )

    # An empty YAML document parses as None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Patch file must contain a mapping at top level, got {type(data).__name__}"
        )
    return data


def parse_patch_file(file_path: Path) -> PatchFile:
    """
    Parse a patch file (YAML/JSON/TOML).

    :param file_path: Path to the patch file.
    :return: The declared patches and behaviors.
    :raises ValueError: If the file is malformed.
    """
    data = load_patch_data(file_path)

    unknown_keys = set(data) - {"patches", "behaviors"}
    if unknown_keys:
        raise ValueError(
            f"{file_path}: unknown top-level keys {sorted(unknown_keys)}"
        )

    patch_entries = data.get("patches", [])
    if not isinstance(patch_entries, list):
        raise ValueError(
            f"{file_path}: 'patches' must be a list, got {type(patch_entries).__name__}"
        )
    behavior_entries = data.get("behaviors", {})
    if not isinstance(behavior_entries, dict):
        raise ValueError(
            f"{file_path}: 'behaviors' must be a mapping, "
            f"got {type(behavior_entries).__name__}"
        )

    result = PatchFile(
        patches=tuple(
            parse_patch(entry, source_file=file_path) for entry in patch_entries
        ),
        behaviors={
            behavior_name: parse_behavior(
                behavior_name, behavior_value, source_file=file_path
            )
            for behavior_name, behavior_value in behavior_entries.items()
        },
        source_file=file_path,
    )
    _logger.debug(
        "Parsed %s: %d patches, %d behaviors",
        file_path,
        len(result.patches),
        len(result.behaviors),
    )
    return result
