"""
Reset Invoker — clears a live resource and rebinds its template.

Behavioral Contract:
- Every reset draws a fresh signed 64-bit seed; the cached interaction seed
  is never reused and the drawn seed is never stored back on the record.
- Any failure raised by the host is wrapped in ResetInvocationError.
"""

import random
from typing import Optional

from restock_kernel.host.contracts import ResettableResource

_SEED_BITS = 64


class ResetInvocationError(Exception):
    """Raised when the host fails to clear or regenerate a resource."""
    pass


class ResetInvoker:
    """Performs the clear + bind + mark-changed sequence on a live resource."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def draw_seed(self) -> int:
        """A signed 64-bit seed."""
        return self._rng.getrandbits(_SEED_BITS) - (1 << (_SEED_BITS - 1))

    def reset(self, resource: ResettableResource, template_ref: str) -> int:
        """Reset a resource's content. Returns the seed the template was bound with."""
        new_seed = self.draw_seed()
        try:
            resource.clear_and_bind_template(template_ref, new_seed)
            resource.mark_changed()
        except Exception as e:
            raise ResetInvocationError(
                f"Reset with template {template_ref} failed: {e}"
            ) from e
        return new_seed
