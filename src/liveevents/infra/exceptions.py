"""
Custom exceptions for liveevents.

This module provides the exception classes raised by schedule loading,
the inventory collaborator and the notification channels.
"""


class LiveEventsError(Exception):
    """Base exception for all liveevents errors."""

    pass


class ScheduleConfigError(LiveEventsError):
    """Raised when a schedule file cannot be read or fails validation."""

    pass


class InventoryError(LiveEventsError):
    """Raised when an inventory operation is rejected."""

    pass


class UnknownItemError(InventoryError, KeyError):
    """Raised when an inventory operation references an item that has no slot."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Unknown inventory item: {self.item_id!r}"


class ChannelClosedError(LiveEventsError):
    """Raised when subscribing to a notification channel that has been closed."""

    pass
