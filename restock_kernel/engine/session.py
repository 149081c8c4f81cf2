"""
Restock Engine — one instance per host session.

Holds the registry, configuration and host collaborators as fields. The
host adapter calls the interaction entry points synchronously from its
event path and drives passes either per host tick (`on_host_tick`) or
with the asyncio driver (`run_async`).

States:
  STOPPED -> start() -> IDLE <-> RUNNING (async driver) -> stop() -> STOPPED
"""

import asyncio
import logging
import random
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from restock_kernel.host.contracts import AvailabilityOracle
from restock_kernel.host.invoker import ResetInvoker
from restock_kernel.models.reconciler import PassReport, RestockConfig
from restock_kernel.models.resource import (
    ContainerClass,
    Coordinates,
    Instance,
    InteractionEvent,
    Positional,
)
from restock_kernel.persistence.store import PersistenceSaveError, PersistenceStore
from restock_kernel.reconciler.loop import ReconciliationLoop, wall_clock_ms
from restock_kernel.registry.store import ResourceRegistry

logger = logging.getLogger(__name__)


class RestockEngine:
    """Session-scoped owner of all tracked-resource state."""

    def __init__(
        self,
        config: Optional[RestockConfig] = None,
        clock: Callable[[], int] = wall_clock_ms,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or RestockConfig()
        self.clock = clock
        self._rng = rng or random.Random()

        # Guards interaction recording and whole passes.
        self._lock = threading.RLock()
        self._registry: Optional[ResourceRegistry] = None
        self._store: Optional[PersistenceStore] = None
        self._loop: Optional[ReconciliationLoop] = None
        self._tick_counter = 0
        self._running = False

    # --- Session lifecycle ---

    @property
    def started(self) -> bool:
        return self._loop is not None

    @property
    def status(self) -> str:
        if not self.started:
            return "stopped"
        return "running" if self._running else "idle"

    @property
    def registry(self) -> Optional[ResourceRegistry]:
        return self._registry

    @property
    def tracked_count(self) -> int:
        return len(self._registry) if self._registry is not None else 0

    def start(self, oracle: AvailabilityOracle, save_dir: Union[str, Path]) -> None:
        """Establish the session and load tracked state from `save_dir`."""
        with self._lock:
            if self.started:
                raise RuntimeError("Restock session already started")
            store = PersistenceStore(Path(save_dir) / self.config.data_file_name)
            registry = ResourceRegistry(store.load())
            self._store = store
            self._registry = registry
            self._loop = ReconciliationLoop(
                registry=registry,
                store=store,
                oracle=oracle,
                invoker=ResetInvoker(self._rng),
                config=self.config,
                clock=self.clock,
            )
            self._tick_counter = 0
        logger.info("Loaded %d tracked resources", len(registry))

    def stop(self) -> None:
        """Final save, then discard the session."""
        with self._lock:
            if not self.started:
                return
            logger.info("Saving %d tracked resources", len(self._registry))
            try:
                self._store.save(self._registry.snapshot())
            except PersistenceSaveError as e:
                logger.error("Final save failed: %s", e)
            else:
                self._registry.clear_dirty()
            self._registry = None
            self._store = None
            self._loop = None

    # --- Interaction recording ---

    def record_interaction(self, event: InteractionEvent) -> bool:
        """
        Record a host-observed interaction. Returns True if the registry
        changed. No I/O; safe on the host's interaction path.
        """
        if event.container_class is ContainerClass.SECONDARY and (
            not self.config.include_secondary_containers
        ):
            return False
        with self._lock:
            if self._registry is None:
                return False
            state = self._registry.upsert_on_interaction(event, self.clock())
        return state is not None

    def record_container_interaction(
        self,
        partition_id: str,
        coordinates: Coordinates,
        template_ref: Optional[str],
        seed: int,
        empty: bool,
        container_class: ContainerClass = ContainerClass.PRIMARY,
    ) -> bool:
        """Entry point for stationary containers."""
        return self.record_interaction(InteractionEvent(
            partition_id=partition_id,
            locator=Positional(coordinates=coordinates),
            template_ref=template_ref,
            seed=seed,
            empty=empty,
            container_class=container_class,
        ))

    def record_instance_interaction(
        self,
        partition_id: str,
        instance_id: str,
        position: Coordinates,
        template_ref: Optional[str],
        seed: int,
        empty: bool,
    ) -> bool:
        """Entry point for mobile resources; `position` becomes the search hint."""
        return self.record_interaction(InteractionEvent(
            partition_id=partition_id,
            locator=Instance(instance_id=instance_id, last_known=position),
            template_ref=template_ref,
            seed=seed,
            empty=empty,
        ))

    # --- Reconciliation drivers ---

    def reconcile_once(self, now: Optional[int] = None) -> PassReport:
        """Run one pass. A no-op until the session is established."""
        with self._lock:
            if self._loop is None:
                return PassReport(now=self.clock() if now is None else now, skipped=True)
            return self._loop.reconcile_once(now)

    def on_host_tick(self) -> Optional[PassReport]:
        """Count a host tick; every `ticks_per_pass` ticks, run a pass."""
        self._tick_counter += 1
        if self._tick_counter < self.config.ticks_per_pass:
            return None
        self._tick_counter = 0
        return self.reconcile_once()

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run passes at a fixed interval until `stop_event` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                self.reconcile_once()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.config.pass_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
