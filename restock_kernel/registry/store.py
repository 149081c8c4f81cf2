"""
Resource Registry — the in-memory map of tracked resources.

Updated by: interaction recording + the reconciliation pass
Queried by: the reconciliation pass + persistence
"""

from typing import Dict, Iterator, List, Optional, Tuple

from restock_kernel.models.resource import InteractionEvent, ResourceKey, TrackedResourceState


class ResourceRegistry:
    """
    Single-owner mapping of ResourceKey -> TrackedResourceState.
    Exactly one state record per key.
    """

    def __init__(self, entries: Optional[Dict[ResourceKey, TrackedResourceState]] = None):
        self._entries: Dict[ResourceKey, TrackedResourceState] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: ResourceKey) -> bool:
        return key in self._entries

    def get(self, key: ResourceKey) -> Optional[TrackedResourceState]:
        """Get the state record for a key."""
        return self._entries.get(key)

    def upsert_on_interaction(
        self, event: InteractionEvent, now: int
    ) -> Optional[TrackedResourceState]:
        """
        Create or refresh the record for an interacted resource.

        Interactions with resources that carry no template are ignored and
        return None. A new record starts its cooldown at `now`; an existing
        one has its mutable fields overwritten and its cooldown refreshed.
        """
        if not event.template_ref:
            return None

        key = ResourceKey.for_locator(event.partition_id, event.locator)
        state = self._entries.get(key)
        if state is None:
            state = TrackedResourceState(
                partition_id=event.partition_id,
                locator=event.locator,
                template_ref=event.template_ref,
                seed=event.seed,
                last_interaction_time=now,
            )
            self._entries[key] = state

        state.partition_id = event.partition_id
        state.locator = event.locator
        state.template_ref = event.template_ref
        state.seed = event.seed
        state.last_interaction_time = max(state.last_interaction_time, now)
        state.observed_empty = event.empty
        state.dirty = True
        return state

    def remove(self, key: ResourceKey) -> bool:
        """Remove a key from tracking."""
        if key in self._entries:
            del self._entries[key]
            return True
        return False

    def items(self) -> List[Tuple[ResourceKey, TrackedResourceState]]:
        """A stable copy of the entries, safe to iterate while removing."""
        return list(self._entries.items())

    def __iter__(self) -> Iterator[ResourceKey]:
        return iter(list(self._entries))

    def snapshot(self) -> Dict[ResourceKey, TrackedResourceState]:
        """The live mapping, for persistence."""
        return self._entries

    def any_dirty(self) -> bool:
        return any(s.dirty for s in self._entries.values())

    def clear_dirty(self) -> None:
        """Mark every record as persisted."""
        for state in self._entries.values():
            state.dirty = False
