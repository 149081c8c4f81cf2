"""
Persistence Store — durable snapshot of the tracked-resource registry.

Behavioral Contract:
- Whole-snapshot saves; no incremental diffing.
- JSON, pretty-printed, human-inspectable. One record per tracked resource,
  keyed by "<partition>:<x>,<y>,<z>" or "<partition>:entity:<instanceId>".
- Transient fields (`dirty`) are never written.
- Load fails soft: an absent or malformed file yields an empty mapping.
- Writes go to a sibling temp file which is then renamed over the target,
  so a crash mid-write never leaves a truncated state file.
"""

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from restock_kernel.models.resource import (
    Coordinates,
    Instance,
    Positional,
    ResourceKey,
    TrackedResourceState,
)

logger = logging.getLogger(__name__)


class PersistenceLoadError(Exception):
    """Raised when the state file exists but cannot be read or parsed."""
    pass


class PersistenceSaveError(Exception):
    """Raised when the state file cannot be written."""
    pass


class PersistedRecord(BaseModel):
    """On-disk shape of one tracked resource."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    partition_id: str = Field(alias="partitionId")
    x: int
    y: int
    z: int
    entity_id: Optional[str] = Field(default=None, alias="entityId")
    template_ref: str = Field(alias="templateRef", min_length=1)
    seed: int
    last_interaction_time: int = Field(alias="lastInteractionTime")
    observed_empty: bool = Field(default=False, alias="observedEmpty")

    @classmethod
    def from_state(cls, state: TrackedResourceState) -> "PersistedRecord":
        locator = state.locator
        anchor = locator.anchor
        return cls(
            partition_id=state.partition_id,
            x=anchor.x,
            y=anchor.y,
            z=anchor.z,
            entity_id=locator.instance_id if isinstance(locator, Instance) else None,
            template_ref=state.template_ref,
            seed=state.seed,
            last_interaction_time=state.last_interaction_time,
            observed_empty=state.observed_empty,
        )

    def to_state(self) -> TrackedResourceState:
        position = Coordinates(x=self.x, y=self.y, z=self.z)
        if self.entity_id is not None:
            locator = Instance(instance_id=self.entity_id, last_known=position)
        else:
            locator = Positional(coordinates=position)
        return TrackedResourceState(
            partition_id=self.partition_id,
            locator=locator,
            template_ref=self.template_ref,
            seed=self.seed,
            last_interaction_time=self.last_interaction_time,
            observed_empty=self.observed_empty,
        )


_FILE_ADAPTER = TypeAdapter(Dict[str, PersistedRecord])


class PersistenceStore:
    """
    JSON-file store for the registry.
    Loaded once at session start, saved whenever a pass leaves the registry dirty.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def temp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Dict[ResourceKey, TrackedResourceState]:
        """
        Strict load. Raises PersistenceLoadError for unreadable or malformed
        data; an absent file is an empty mapping.
        """
        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceLoadError(f"Cannot read {self.path}: {e}") from e

        try:
            records = _FILE_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise PersistenceLoadError(
                f"Malformed state file {self.path}: {e.error_count()} error(s)"
            ) from e

        # Keys are rebuilt from record fields; the file's key text is not trusted.
        result: Dict[ResourceKey, TrackedResourceState] = {}
        for record in records.values():
            state = record.to_state()
            result[state.key] = state
        return result

    def load(self) -> Dict[ResourceKey, TrackedResourceState]:
        """Fail-soft load: tracked history is sacrificed rather than blocking startup."""
        try:
            return self.read()
        except PersistenceLoadError as e:
            logger.warning("Discarding tracked state, starting empty: %s", e)
            return {}

    def dumps(self, entries: Dict[ResourceKey, TrackedResourceState]) -> str:
        """Serialize a registry snapshot to the on-disk JSON text."""
        document = {
            key.storage_key(): PersistedRecord.from_state(state).model_dump(
                mode="json", by_alias=True
            )
            for key, state in entries.items()
        }
        return json.dumps(document, indent=2, sort_keys=True)

    def save(self, entries: Dict[ResourceKey, TrackedResourceState]) -> None:
        """Write the full snapshot. Raises PersistenceSaveError on I/O failure."""
        text = self.dumps(entries)
        tmp = self.temp_path
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise PersistenceSaveError(f"Cannot write {self.path}: {e}") from e
