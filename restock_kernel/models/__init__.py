"""Restock kernel data models."""

from restock_kernel.models.reconciler import PassReport, RestockConfig, TimeUnit
from restock_kernel.models.resource import (
    ContainerClass,
    Coordinates,
    Instance,
    InstanceId,
    InteractionEvent,
    Locator,
    Positional,
    ResourceKey,
    TrackedResourceState,
)

__all__ = [
    "ContainerClass",
    "Coordinates",
    "Instance",
    "InstanceId",
    "InteractionEvent",
    "Locator",
    "PassReport",
    "Positional",
    "ResourceKey",
    "RestockConfig",
    "TimeUnit",
    "TrackedResourceState",
]
