# Overview: Request sequencing for backend fetches that may overlap.

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestTicket:
    resource: str
    sequence: int


class RequestSequencer:
    """
    Hand out monotonically increasing tickets per resource.

    A fetch takes a ticket before it goes out and applies its response only
    if its ticket is still the latest one issued for that resource. A slow
    response for slot A that lands after the fetch for slot B is dropped
    instead of overwriting B's inventory.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, int] = {}

    def issue(self, resource: str) -> RequestTicket:
        with self._lock:
            sequence = self._latest.get(resource, 0) + 1
            self._latest[resource] = sequence
            return RequestTicket(resource=resource, sequence=sequence)

    def is_latest(self, ticket: RequestTicket) -> bool:
        with self._lock:
            return self._latest.get(ticket.resource) == ticket.sequence

    def invalidate(self, resource: str) -> None:
        """Make every outstanding ticket for resource stale."""
        self.issue(resource)
