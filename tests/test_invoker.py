"""Tests for the Reset Invoker and the in-memory host collaborators."""

import random

import pytest

from restock_kernel.host.contracts import AvailabilityOracle, ResettableResource
from restock_kernel.host.invoker import ResetInvocationError, ResetInvoker
from restock_kernel.host.memory import InMemoryHost, MemoryContainer
from restock_kernel.models.resource import Coordinates, Instance, Positional


class TestResetInvoker:
    def test_reset_binds_fresh_seed_and_marks_changed(self):
        invoker = ResetInvoker(random.Random(7))
        container = MemoryContainer(template_ref="chests/igloo", seed=42)

        new_seed = invoker.reset(container, "chests/igloo")

        assert container.seed == new_seed
        assert container.bound_seeds == [new_seed]
        assert container.changed_count == 1
        assert not container.is_empty()

    def test_seeds_are_signed_64_bit(self):
        invoker = ResetInvoker(random.Random(1))
        seeds = [invoker.draw_seed() for _ in range(200)]
        assert all(-(2 ** 63) <= s < 2 ** 63 for s in seeds)
        assert any(s < 0 for s in seeds)
        assert len(set(seeds)) == len(seeds)

    def test_seeded_rng_is_reproducible(self):
        a = ResetInvoker(random.Random(99))
        b = ResetInvoker(random.Random(99))
        assert [a.draw_seed() for _ in range(5)] == [b.draw_seed() for _ in range(5)]

    def test_host_failure_is_wrapped(self):
        invoker = ResetInvoker()
        container = MemoryContainer(fail_with=RuntimeError("block entity unloaded"))

        with pytest.raises(ResetInvocationError) as excinfo:
            invoker.reset(container, "chests/igloo")
        assert "block entity unloaded" in str(excinfo.value)
        assert container.changed_count == 0


class TestInMemoryHost:
    def setup_method(self):
        self.host = InMemoryHost()
        self.host.add_partition("overworld")
        self.pos = Coordinates(x=10, y=64, z=-3)

    def test_conforms_to_protocols(self):
        assert isinstance(self.host, AvailabilityOracle)
        assert isinstance(MemoryContainer(), ResettableResource)

    def test_zone_activity_follows_loaded_chunks(self):
        locator = Positional(coordinates=self.pos)
        assert not self.host.is_zone_active("overworld", locator)

        self.host.load_zone("overworld", Coordinates(x=0, y=0, z=-16))
        assert self.host.is_zone_active("overworld", locator)

        self.host.unload_zone("overworld", self.pos)
        assert not self.host.is_zone_active("overworld", locator)
        assert not self.host.is_zone_active("the_end", locator)

    def test_resolve_resource(self):
        container = self.host.place("overworld", self.pos, MemoryContainer())
        assert self.host.resolve_resource("overworld", self.pos) is container

        self.host.break_block("overworld", self.pos)
        assert self.host.resolve_resource("overworld", self.pos) is None

    def test_resolve_instance_within_radius(self):
        cart = self.host.spawn_instance("overworld", "cart-1", self.pos, MemoryContainer())
        near = Coordinates(x=12, y=63, z=-1)
        far = Coordinates(x=13, y=64, z=-3)

        assert self.host.resolve_instance("overworld", "cart-1", near, 2) is cart
        assert self.host.resolve_instance("overworld", "cart-1", far, 2) is None
        assert self.host.resolve_instance("overworld", "cart-2", self.pos, 2) is None

    def test_instance_zone_uses_last_known_position(self):
        locator = Instance(instance_id="cart-1", last_known=self.pos)
        self.host.load_zone("overworld", self.pos)
        assert self.host.is_zone_active("overworld", locator)
