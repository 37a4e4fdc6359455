"""
Copy-count bookkeeping for spray-and-wait.

Each message carries a single integer "remaining copies" property. It is
set once when the message is created and only ever shrinks afterwards:

- binary mode: on a committed send the sender keeps ceil(n/2) and the
  receiver starts with floor(n/2)
- linear mode: the sender keeps n-1 and the receiver starts with 1

A message holding a single copy can still be delivered to its destination
but is never replicated again.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

LOG = logging.getLogger(__name__)

COPIES_PROPERTY = "SprayAndWaitRouter.copies"


class SprayAndWaitError(Exception):
    """Base exception for the routing core."""


class CopyCountMissingError(SprayAndWaitError):
    """A message reached the router without copy-count metadata."""


class CopyCountLedger:
    def __init__(self, initial_copies: int, binary_mode: bool) -> None:
        if int(initial_copies) < 1:
            raise ValueError("initial_copies must be >= 1")
        self._initial_copies = int(initial_copies)
        self._binary_mode = bool(binary_mode)

    @property
    def initial_copies(self) -> int:
        return self._initial_copies

    @property
    def binary_mode(self) -> bool:
        return self._binary_mode

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, message: Any) -> None:
        """Attach the configured budget to a freshly originated message."""
        if COPIES_PROPERTY in message.properties:
            raise SprayAndWaitError(
                f"message {message.id} already carries a copy count"
            )
        message.properties[COPIES_PROPERTY] = self._initial_copies

    def on_receive(self, message: Any) -> None:
        """Set the receiver's share after a transfer completed."""
        old = self.copies(message)
        if self._binary_mode:
            new = old // 2
        else:
            new = 1
        message.properties[COPIES_PROPERTY] = new
        LOG.debug("received %s: copies %d -> %d", message.id, old, new)

    def on_send_commit(self, message: Optional[Any]) -> None:
        """Reduce the sender's share after a transfer completed.

        ``message`` is the sender's own copy, or None when the store has
        already dropped it; in that case there is nothing left to reduce.
        """
        if message is None:
            LOG.debug("send committed for a message no longer buffered; ignoring")
            return

        old = self.copies(message)
        if self._binary_mode:
            new = (old + 1) // 2
        else:
            new = old - 1
        message.properties[COPIES_PROPERTY] = new
        LOG.debug("sent %s: copies %d -> %d", message.id, old, new)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def copies(self, message: Any) -> int:
        value = message.properties.get(COPIES_PROPERTY)
        if value is None:
            raise CopyCountMissingError(
                f"not a spray-and-wait message: {message.id}"
            )
        return int(value)

    def eligible_for_replication(self, message: Any) -> bool:
        return self.copies(message) > 1
