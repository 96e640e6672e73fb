"""Event dispatch — per-endpoint delivery of runner events."""

from runwire.dispatch.channels import (
    CallbackChannel,
    Channel,
    FanoutChannel,
    QueueChannel,
    RecorderChannel,
)
from runwire.dispatch.dispatcher import Delivery, EventDispatcher

__all__ = [
    "CallbackChannel",
    "Channel",
    "Delivery",
    "EventDispatcher",
    "FanoutChannel",
    "QueueChannel",
    "RecorderChannel",
]
