"""
Reconciliation Loop — the periodic pass that restocks idle resources.

One pass:
  1. Capture `now` once; every comparison in the pass uses it.
  2. For each tracked resource, in isolation:
       partition gone          -> evict
       zone not active         -> skip (never force-load)
       resource gone / changed -> evict
       cooldown elapsed and (policy allows non-empty or resource is empty)
                               -> reset, refresh timestamp
  3. If anything is dirty, save the whole registry once and clear dirty flags.
  4. Report the reset count (zero is not reported).

Per-entry failures are contained: a resource that fails to reset is left
untouched and retried naturally on the next pass.
"""

import logging
import time
from typing import Callable, Optional

from restock_kernel.host.contracts import AvailabilityOracle, ResettableResource
from restock_kernel.host.invoker import ResetInvocationError, ResetInvoker
from restock_kernel.models.reconciler import PassReport, RestockConfig
from restock_kernel.models.resource import ResourceKey, TrackedResourceState
from restock_kernel.persistence.store import PersistenceSaveError, PersistenceStore
from restock_kernel.registry.store import ResourceRegistry

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


class ReconciliationLoop:
    """
    Scans the registry, applies the availability and eligibility policy,
    triggers resets and evictions, and persists on change.
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        store: PersistenceStore,
        oracle: AvailabilityOracle,
        invoker: ResetInvoker,
        config: Optional[RestockConfig] = None,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        self.registry = registry
        self.store = store
        self.oracle = oracle
        self.invoker = invoker
        self.config = config or RestockConfig()
        self.clock = clock
        self._save_pending = False
        self.total_resets = 0

    def is_eligible(
        self, state: TrackedResourceState, resource: ResettableResource, now: int
    ) -> bool:
        """
        Cooldown boundary is inclusive. Under the empty-only policy the live
        resource's emptiness decides, not the cached `observed_empty`.
        """
        if now - state.last_interaction_time < self.config.cooldown_ms:
            return False
        if self.config.only_reset_when_empty:
            return resource.is_empty()
        return True

    def reconcile_once(self, now: Optional[int] = None) -> PassReport:
        """Run a single reconciliation pass."""
        if now is None:
            now = self.clock()

        report = PassReport(now=now)
        for key, state in self.registry.items():
            report.scanned += 1
            try:
                self._reconcile_entry(key, state, now, report)
            except Exception as e:
                # Oracle or resource misbehaved for this entry only.
                report.failures += 1
                logger.error("Failed to check tracked resource %s: %s", key, e)

        if report.evicted or self._save_pending or self.registry.any_dirty():
            self._persist(report)

        if report.resets > 0:
            logger.info("Reset %d resources", report.resets)
        return report

    def _reconcile_entry(
        self,
        key: ResourceKey,
        state: TrackedResourceState,
        now: int,
        report: PassReport,
    ) -> None:
        if not self.oracle.partition_exists(state.partition_id):
            self._evict(
                key, report,
                f"partition '{state.partition_id}' no longer exists",
            )
            return

        if not self.oracle.is_zone_active(state.partition_id, state.locator):
            report.inactive += 1
            logger.debug("Zone not active for %s, skipping", key)
            return

        resource = self._resolve(state)
        if resource is None:
            if state.locator.kind == "instance":
                reason = f"instance {state.locator.instance_id} not found"
            else:
                reason = "no longer a resettable container"
            self._evict(key, report, reason)
            return

        if not self.is_eligible(state, resource, now):
            return

        try:
            self.invoker.reset(resource, state.template_ref)
        except ResetInvocationError as e:
            report.failures += 1
            logger.error("Failed to reset %s: %s", key, e)
            return

        try:
            post_empty = resource.is_empty()
        except Exception as e:
            logger.warning("Cannot read contents of %s after reset: %s", key, e)
            post_empty = False

        state.last_interaction_time = now
        state.observed_empty = post_empty
        state.dirty = True
        report.resets += 1
        self.total_resets += 1
        logger.info("Reset %s with template %s", key, state.template_ref)

    def _resolve(self, state: TrackedResourceState) -> Optional[ResettableResource]:
        """Look up the live resource, branching on the locator tag."""
        locator = state.locator
        if locator.kind == "instance":
            return self.oracle.resolve_instance(
                state.partition_id,
                locator.instance_id,
                locator.last_known,
                self.config.instance_search_radius,
            )
        return self.oracle.resolve_resource(state.partition_id, locator.coordinates)

    def _evict(self, key: ResourceKey, report: PassReport, reason: str) -> None:
        self.registry.remove(key)
        report.evicted.append(key.storage_key())
        logger.info("Removing %s from tracking: %s", key, reason)

    def _persist(self, report: PassReport) -> None:
        """Whole-snapshot save; dirty flags survive a failed write."""
        try:
            self.store.save(self.registry.snapshot())
        except PersistenceSaveError as e:
            self._save_pending = True
            report.save_failed = True
            logger.error("Failed to save tracked state: %s", e)
            return

        self.registry.clear_dirty()
        self._save_pending = False
        report.persisted = True
