"""
In-memory host world.

A simulated host that satisfies AvailabilityOracle and hands out
MemoryContainer resources. Zones are 16x16 columns ("chunks") that are
active only when explicitly loaded. Used by tests and by hosts that want
to drive the kernel against a simulated world.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from restock_kernel.models.resource import Coordinates, Instance, Positional


def _default_generator(template_ref: str, seed: int) -> List[str]:
    return [f"{template_ref}#{seed & 0xFFFF:04x}"]


class MemoryContainer:
    """
    A resettable container backed by a plain item list.

    Args:
        items: Initial content.
        template_ref: Template currently bound, if any.
        seed: Seed currently bound.
        generator: (template_ref, seed) -> items, run when a template is bound.
        fail_with: If set, raised by clear_and_bind_template.
    """

    def __init__(
        self,
        items: Optional[List[str]] = None,
        template_ref: Optional[str] = None,
        seed: int = 0,
        generator: Callable[[str, int], List[str]] = _default_generator,
        fail_with: Optional[BaseException] = None,
    ) -> None:
        self.items: List[str] = list(items or [])
        self.template_ref = template_ref
        self.seed = seed
        self.generator = generator
        self.fail_with = fail_with
        self.reset_count = 0
        self.changed_count = 0
        self.bound_seeds: List[int] = []

    def is_empty(self) -> bool:
        return not self.items

    def take_all(self) -> List[str]:
        """Empty the container, as a player looting it would."""
        taken, self.items = self.items, []
        return taken

    def clear_and_bind_template(self, template_ref: str, new_seed: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.template_ref = template_ref
        self.seed = new_seed
        self.items = list(self.generator(template_ref, new_seed))
        self.bound_seeds.append(new_seed)
        self.reset_count += 1

    def mark_changed(self) -> None:
        self.changed_count += 1


@dataclass
class _Partition:
    loaded: Set[Tuple[int, int]] = field(default_factory=set)
    blocks: Dict[Coordinates, MemoryContainer] = field(default_factory=dict)
    instances: Dict[str, Tuple[Coordinates, MemoryContainer]] = field(default_factory=dict)


class InMemoryHost:
    """Simulated host world. Conforms to the AvailabilityOracle protocol."""

    def __init__(self) -> None:
        self._partitions: Dict[str, _Partition] = {}
        self.resolve_calls = 0

    # --- World setup ---

    def add_partition(self, partition_id: str) -> None:
        self._partitions.setdefault(partition_id, _Partition())

    def remove_partition(self, partition_id: str) -> None:
        self._partitions.pop(partition_id, None)

    def load_zone(self, partition_id: str, position: Coordinates) -> None:
        self._partition(partition_id).loaded.add(position.chunk())

    def unload_zone(self, partition_id: str, position: Coordinates) -> None:
        self._partition(partition_id).loaded.discard(position.chunk())

    def place(
        self, partition_id: str, position: Coordinates, container: MemoryContainer
    ) -> MemoryContainer:
        self._partition(partition_id).blocks[position] = container
        return container

    def break_block(self, partition_id: str, position: Coordinates) -> None:
        self._partition(partition_id).blocks.pop(position, None)

    def spawn_instance(
        self,
        partition_id: str,
        instance_id: str,
        position: Coordinates,
        container: MemoryContainer,
    ) -> MemoryContainer:
        self._partition(partition_id).instances[instance_id] = (position, container)
        return container

    def move_instance(
        self, partition_id: str, instance_id: str, position: Coordinates
    ) -> None:
        part = self._partition(partition_id)
        _, container = part.instances[instance_id]
        part.instances[instance_id] = (position, container)

    def despawn_instance(self, partition_id: str, instance_id: str) -> None:
        self._partition(partition_id).instances.pop(instance_id, None)

    def _partition(self, partition_id: str) -> _Partition:
        try:
            return self._partitions[partition_id]
        except KeyError:
            raise KeyError(f"Unknown partition: {partition_id}") from None

    # --- AvailabilityOracle ---

    def partition_exists(self, partition_id: str) -> bool:
        return partition_id in self._partitions

    def is_zone_active(
        self, partition_id: str, locator: Union[Positional, Instance]
    ) -> bool:
        part = self._partitions.get(partition_id)
        if part is None:
            return False
        return locator.anchor.chunk() in part.loaded

    def resolve_resource(
        self, partition_id: str, coordinates: Coordinates
    ) -> Optional[MemoryContainer]:
        self.resolve_calls += 1
        part = self._partitions.get(partition_id)
        if part is None:
            return None
        return part.blocks.get(coordinates)

    def resolve_instance(
        self,
        partition_id: str,
        instance_id: str,
        search_hint: Coordinates,
        radius: int,
    ) -> Optional[MemoryContainer]:
        self.resolve_calls += 1
        part = self._partitions.get(partition_id)
        if part is None:
            return None
        found = part.instances.get(instance_id)
        if found is None:
            return None
        position, container = found
        if position.distance_to(search_hint) > radius:
            return None
        return container
