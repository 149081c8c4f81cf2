"""
Host collaborator protocols.

The host runtime owns partitions, zone loading and the resources themselves.
The kernel only queries it through these two protocols. Implementations may
raise any exception on failure; the reconciler isolates it to the entry it
was checking.
"""

from typing import Optional, Protocol, Union, runtime_checkable

from restock_kernel.models.resource import Coordinates, Instance, Positional


@runtime_checkable
class ResettableResource(Protocol):
    """A live host object holding template-generated content."""

    def is_empty(self) -> bool:
        """True if the resource currently holds no content."""
        ...

    def clear_and_bind_template(self, template_ref: str, new_seed: int) -> None:
        """Drop current content and bind a template to regenerate from."""
        ...

    def mark_changed(self) -> None:
        """Flush the change to host persistence."""
        ...


@runtime_checkable
class AvailabilityOracle(Protocol):
    """Answers whether tracked resources can be checked or reset right now."""

    def partition_exists(self, partition_id: str) -> bool:
        ...

    def is_zone_active(
        self, partition_id: str, locator: Union[Positional, Instance]
    ) -> bool:
        """Whether the locator's region is loaded. Must never force a load."""
        ...

    def resolve_resource(
        self, partition_id: str, coordinates: Coordinates
    ) -> Optional[ResettableResource]:
        """The resettable container at a position, or None if gone or replaced."""
        ...

    def resolve_instance(
        self,
        partition_id: str,
        instance_id: str,
        search_hint: Coordinates,
        radius: int,
    ) -> Optional[ResettableResource]:
        """The mobile resource with this id within `radius` of the hint, or None."""
        ...
