"""Tests for global and scoped monkey-patching."""

import logging
from typing import Callable, Iterator

import pytest

from mixinpatch import Patch, PatchRegistry, PatchSet, Release, monkey
from mixinpatch._registry import DEFAULT_REGISTRY


class Number(int):
    pass


def up_to(self: int, count_to: int) -> list[int]:
    return list(range(int(self), count_to + 1))


def times(self: int, iterate: Callable[[int], object]) -> None:
    for i in range(int(self)):
        iterate(i)


@pytest.fixture(autouse=True)
def unpatched_number() -> Iterator[None]:
    yield
    for name in ("up_to", "times", "functionName"):
        monkey.unpatch(Number, name)


class TestPatch:
    def test_should_add_the_function_to_the_target(self) -> None:
        """A patch is visible on instances of the target."""
        monkey.patch(Number, "up_to", up_to)
        assert hasattr(Number(50), "up_to")

    def test_should_be_callable_on_an_instance(self) -> None:
        monkey.patch(Number, "up_to", up_to)
        assert Number(50).up_to(75) == list(range(50, 76))

    def test_should_work_as_expected(self) -> None:
        """up_to counts from the receiver to the argument inclusive."""
        monkey.patch(Number, "up_to", up_to)
        assert Number(1).up_to(5) == [1, 2, 3, 4, 5]

    def test_existing_instances_observe_the_patch(self) -> None:
        """Instances created before patching see the patch."""
        fifty = Number(50)
        monkey.patch(Number, "up_to", up_to)
        assert fifty.up_to(51) == [50, 51]

    def test_subclasses_observe_the_patch(self) -> None:
        """Subclasses inherit the patch."""
        class Small(Number):
            pass

        monkey.patch(Number, "up_to", up_to)
        assert Small(2).up_to(3) == [2, 3]

    def test_replaces_a_native_definition(self) -> None:
        """A patch overrides a method defined in the class body."""
        class Greeter:
            def greet(self) -> str:
                return "native"

        monkey.patch(Greeter, "greet", lambda self: "patched")
        assert Greeter().greet() == "patched"

    def test_builtin_types_refuse_patches(self) -> None:
        """Built-in types raise TypeError and nothing is recorded."""
        with pytest.raises(TypeError):
            monkey.patch(int, "up_to", up_to)
        assert DEFAULT_REGISTRY.installed(int, "up_to") is None

    def test_registry_records_the_patch(self) -> None:
        """The default registry records installed patches."""
        monkey.patch(Number, "up_to", up_to)
        assert DEFAULT_REGISTRY.installed(Number, "up_to") is up_to
        assert Patch(target=Number, name="up_to", implementation=up_to) in list(
            DEFAULT_REGISTRY
        )


class TestUnpatch:
    def test_should_be_removed(self) -> None:
        """unpatch removes the attribute and the record."""
        monkey.patch(Number, "up_to", up_to)
        monkey.unpatch(Number, "up_to")
        assert not hasattr(Number(50), "up_to")
        assert DEFAULT_REGISTRY.installed(Number, "up_to") is None

    def test_absent_name_is_a_no_op(self) -> None:
        """Unpatching an absent name does nothing."""
        monkey.unpatch(Number, "functionName")
        monkey.unpatch(Number, "functionName")
        assert not hasattr(Number, "functionName")

    def test_inherited_definitions_are_not_touched(self) -> None:
        """unpatch only deletes names the class defines itself."""
        monkey.unpatch(Number, "bit_length")
        assert Number(5).bit_length() == 3

    def test_base_class_definition_becomes_visible_again(self) -> None:
        """After unpatch, a base class definition is visible again."""
        class Base:
            def greet(self) -> str:
                return "base"

        class Child(Base):
            pass

        monkey.patch(Child, "greet", lambda self: "patched")
        monkey.unpatch(Child, "greet")
        assert Child().greet() == "base"

    def test_native_definition_is_deleted_not_restored(self) -> None:
        """unpatch deletes rather than restoring a native method."""
        class Greeter:
            def greet(self) -> str:
                return "native"

        monkey.patch(Greeter, "greet", lambda self: "patched")
        monkey.unpatch(Greeter, "greet")
        assert not hasattr(Greeter(), "greet")

    def test_stacked_patches_are_not_unwound(self) -> None:
        """One unpatch removes a doubly installed name entirely."""
        monkey.patch(Number, "up_to", up_to)
        monkey.patch(Number, "up_to", lambda self, count_to: [])
        monkey.unpatch(Number, "up_to")
        assert not hasattr(Number(1), "up_to")


class TestPatchRegistry:
    def test_independent_registries_record_separately(self) -> None:
        """Registries keep separate records."""
        registry = PatchRegistry()
        registry.install(Number, "up_to", up_to)
        assert registry.installed(Number, "up_to") is up_to
        assert len(registry) == 1
        assert DEFAULT_REGISTRY.installed(Number, "up_to") is None
        registry.uninstall(Number, "up_to")
        assert len(registry) == 0
        assert list(registry) == []

    def test_reinstall_replaces_entry(self) -> None:
        """Installing the same key again replaces the record."""
        registry = PatchRegistry()
        registry.install(Number, "up_to", up_to)
        registry.install(Number, "up_to", times)
        assert list(registry) == [
            Patch(target=Number, name="up_to", implementation=times)
        ]
        registry.uninstall(Number, "up_to")


class TestPatchSet:
    def test_should_be_a_factory_for_patch_sets(self) -> None:
        assert isinstance(monkey.create(), PatchSet)

    def test_registration_does_not_apply_the_patch(self) -> None:
        """Registering a patch has no effect until activation."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        assert not hasattr(Number(50), "times")
        assert counting.patches == (
            Patch(target=Number, name="times", implementation=times),
        )

    def test_should_allow_activation(self) -> None:
        """activate installs registered patches."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counting.activate()
        assert hasattr(Number(50), "times")
        counting.deactivate()

    def test_should_allow_deactivation(self) -> None:
        """deactivate removes registered patches."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counting.activate()
        counting.deactivate()
        assert not hasattr(Number(50), "times")

    def test_deactivate_twice_is_safe(self) -> None:
        """Deactivating twice leaves the target unpatched."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counting.activate()
        counting.deactivate()
        assert not hasattr(Number(50), "times")
        counting.deactivate()
        assert not hasattr(Number(50), "times")

    def test_reactivation_reapplies(self) -> None:
        """Activating twice re-installs without stacking."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counting.activate()
        counting.activate()
        assert hasattr(Number(50), "times")
        counting.deactivate()
        assert not hasattr(Number(50), "times")

    def test_later_patch_of_the_same_name_wins(self) -> None:
        """The last patch of a name wins, and deactivation removes it entirely."""
        def empty_up_to(self: int, count_to: int) -> list[int]:
            return []

        counting = monkey.create()
        counting.register_patch(Number, "up_to", up_to)
        counting.register_patch(Number, "up_to", empty_up_to)

        counting.activate()
        assert Number(1).up_to(5) == []

        counting.deactivate()
        assert not hasattr(Number(1), "up_to")

    def test_should_allow_wrapping_of_functions_where_the_patch_is_active(self) -> None:
        """The patch exists only for the duration of wrap."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counter = 0

        def increment(_: int) -> None:
            nonlocal counter
            counter += 1

        def count_to_ten() -> None:
            Number(10).times(increment)

        counting.wrap(count_to_ten)

        assert counter == 10
        assert not hasattr(Number(10), "times")

    def test_wrap_returns_the_callback_result(self) -> None:
        """wrap returns what the callback returns."""
        counting = monkey.create()
        counting.register_patch(Number, "up_to", up_to)
        assert counting.wrap(lambda: Number(1).up_to(3)) == [1, 2, 3]

    def test_activated_context_manager(self) -> None:
        """activated() scopes the patch set to a with block."""
        counting = monkey.create()
        counting.register_patch(Number, "up_to", up_to)
        with counting.activated() as active:
            assert active is counting
            assert Number(1).up_to(2) == [1, 2]
        assert not hasattr(Number(1), "up_to")

    def test_uses_the_given_registry(self) -> None:
        """A patch set records into the registry it was given."""
        registry = PatchRegistry()
        counting = monkey.create(registry=registry)
        counting.register_patch(Number, "up_to", up_to)
        counting.activate()
        assert registry.installed(Number, "up_to") is up_to
        assert DEFAULT_REGISTRY.installed(Number, "up_to") is None
        counting.deactivate()


class TestReleaseDiscipline:
    def _failing_callback(self) -> None:
        assert Number(1).up_to(2) == [1, 2]
        raise RuntimeError("callback failed")

    def test_guaranteed_is_the_default(self) -> None:
        assert monkey.create().release is Release.GUARANTEED

    def test_guaranteed_release_deactivates_on_error(self) -> None:
        """GUARANTEED removes patches when the callback raises."""
        counting = monkey.create(release=Release.GUARANTEED)
        counting.register_patch(Number, "up_to", up_to)

        with pytest.raises(RuntimeError, match="callback failed"):
            counting.wrap(self._failing_callback)

        assert not hasattr(Number(1), "up_to")

    def test_legacy_release_leaves_patches_active_on_error(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """LEGACY keeps patches installed and warns when the callback raises."""
        counting = monkey.create(release=Release.LEGACY)
        counting.register_patch(Number, "up_to", up_to)

        with caplog.at_level(logging.WARNING, logger="mixinpatch.monkey"):
            with pytest.raises(RuntimeError, match="callback failed"):
                counting.wrap(self._failing_callback)

        assert Number(1).up_to(2) == [1, 2]
        assert "Patch set left active after an exception: Number.up_to" in [
            record.getMessage() for record in caplog.records
        ]
        counting.deactivate()
        assert not hasattr(Number(1), "up_to")

    @pytest.mark.parametrize("release", [Release.GUARANTEED, Release.LEGACY])
    def test_failed_activation_uninstalls_earlier_patches(
        self, release: Release
    ) -> None:
        """A patch that cannot be installed must not leave earlier ones behind."""
        counting = monkey.create(release=release)
        counting.register_patch(Number, "up_to", up_to)
        counting.register_patch(int, "up_to", up_to)
        called = False

        def callback() -> None:
            nonlocal called
            called = True

        with pytest.raises(TypeError):
            counting.wrap(callback)

        assert not called
        assert "up_to" not in vars(Number)
        assert DEFAULT_REGISTRY.installed(Number, "up_to") is None

    def test_failed_activate_uninstalls_earlier_patches(self) -> None:
        """activate() rolls back its own partial installation."""
        counting = monkey.create()
        counting.register_patch(Number, "times", times)
        counting.register_patch(Number, "up_to", up_to)
        counting.register_patch(int, "up_to", up_to)

        with pytest.raises(TypeError):
            counting.activate()

        assert "times" not in vars(Number)
        assert "up_to" not in vars(Number)

    def test_legacy_release_deactivates_on_success(self) -> None:
        """LEGACY still removes patches after a normal return."""
        counting = monkey.create(release=Release.LEGACY)
        counting.register_patch(Number, "up_to", up_to)
        assert counting.wrap(lambda: Number(1).up_to(2)) == [1, 2]
        assert not hasattr(Number(1), "up_to")
