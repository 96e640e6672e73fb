"""Event dispatcher — routes a run's events to the endpoint that started it."""

from __future__ import annotations

import enum
import logging

from runwire.dispatch.channels import Channel
from runwire.events.models import Event

logger = logging.getLogger(__name__)


class Delivery(enum.Enum):
    """Outcome of a single dispatch."""

    DELIVERED = "delivered"
    DROPPED = "dropped"


class EventDispatcher:
    """Pure fan-out from endpoint id to its delivery channel.

    Channels are connected out-of-band when a UI surface attaches.  Events
    for endpoints with no channel are dropped: a disconnected consumer must
    never block a run.
    """

    def __init__(self) -> None:
        self._channels: dict[str, Channel] = {}
        self._dropped = 0

    @property
    def dropped_count(self) -> int:
        """Number of events dropped since creation."""
        return self._dropped

    @property
    def endpoints(self) -> list[str]:
        return list(self._channels)

    def connect(self, endpoint: str, channel: Channel) -> None:
        """Attach *channel* to *endpoint*, replacing any previous one."""
        if endpoint in self._channels:
            logger.debug("Replacing channel for endpoint '%s'", endpoint)
        self._channels[endpoint] = channel

    def disconnect(self, endpoint: str) -> None:
        """Detach *endpoint*; later events for it are dropped."""
        self._channels.pop(endpoint, None)

    def is_connected(self, endpoint: str) -> bool:
        return endpoint in self._channels

    def dispatch(self, endpoint: str, event: Event) -> Delivery:
        """Forward *event* to *endpoint*'s channel if one is connected."""
        channel = self._channels.get(endpoint)
        if channel is None:
            self._dropped += 1
            return Delivery.DROPPED
        try:
            channel.send(event)
        except Exception as exc:
            self._dropped += 1
            logger.warning(
                "Dropping %s event for run %s: endpoint '%s' failed: %s",
                event.type,
                event.run_id,
                endpoint,
                exc,
            )
            return Delivery.DROPPED
        return Delivery.DELIVERED
