"""Keys, locators and the per-resource interaction snapshot."""

from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """Integer block position inside a partition."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    z: int

    def chunk(self) -> Tuple[int, int]:
        """The 16x16 column this position falls in."""
        return (self.x >> 4, self.z >> 4)

    def distance_to(self, other: "Coordinates") -> int:
        """Chebyshev distance, i.e. the half-size of the smallest box containing both."""
        return max(abs(self.x - other.x), abs(self.y - other.y), abs(self.z - other.z))

    def short(self) -> str:
        return f"{self.x},{self.y},{self.z}"


class InstanceId(BaseModel):
    """Stable identifier of a mobile resource (e.g. a cart carrying a container)."""

    model_config = ConfigDict(frozen=True)

    value: str


class Positional(BaseModel):
    """A stationary resource, addressed by where it sits."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["positional"] = "positional"
    coordinates: Coordinates

    @property
    def anchor(self) -> Coordinates:
        return self.coordinates


class Instance(BaseModel):
    """A mobile resource, addressed by identity; `last_known` is a search hint."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["instance"] = "instance"
    instance_id: str
    last_known: Coordinates

    @property
    def anchor(self) -> Coordinates:
        return self.last_known


Locator = Annotated[Union[Positional, Instance], Field(discriminator="kind")]


class ResourceKey(BaseModel):
    """Identity of a trackable resource. Immutable and hashable."""

    model_config = ConfigDict(frozen=True)

    partition_id: str
    ident: Union[Coordinates, InstanceId]

    @classmethod
    def for_locator(cls, partition_id: str, locator: Union[Positional, Instance]) -> "ResourceKey":
        if isinstance(locator, Instance):
            return cls(partition_id=partition_id, ident=InstanceId(value=locator.instance_id))
        return cls(partition_id=partition_id, ident=locator.coordinates)

    @property
    def is_instance(self) -> bool:
        return isinstance(self.ident, InstanceId)

    def storage_key(self) -> str:
        """Composite key used in the persisted state file."""
        if isinstance(self.ident, InstanceId):
            return f"{self.partition_id}:entity:{self.ident.value}"
        return f"{self.partition_id}:{self.ident.short()}"

    def __str__(self) -> str:
        return self.storage_key()


class ContainerClass(str, Enum):
    PRIMARY = "primary"        # chest-like, always tracked
    SECONDARY = "secondary"    # barrel-like, tracked only when configured


class TrackedResourceState(BaseModel):
    """
    Last-known interaction snapshot for one resource.

    `template_ref` and `seed` change only on interaction. A reset refreshes
    `last_interaction_time` and `observed_empty`. `dirty` is transient and
    never serialized.
    """

    partition_id: str
    locator: Locator
    template_ref: str
    seed: int
    last_interaction_time: int              # ms since epoch
    observed_empty: bool = False
    dirty: bool = Field(default=False, exclude=True)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey.for_locator(self.partition_id, self.locator)


class InteractionEvent(BaseModel):
    """A host-observed interaction with a content-bearing container."""

    partition_id: str
    locator: Locator
    template_ref: Optional[str] = None      # None: not template-bound, ignored
    seed: int = 0
    empty: bool = False
    container_class: ContainerClass = ContainerClass.PRIMARY
