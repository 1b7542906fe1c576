"""
Inventory collaborator.

Holds item amounts keyed by item id.  Each slot exposes its amount as an
ObservableValue; slot creation and removal are broadcast on
``slot_added``/``slot_removed``.  A rejected operation leaves every slot
unchanged.

InventoryConnector moves whatever leaves one inventory into another.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from threading import RLock

from liveevents.infra.exceptions import UnknownItemError
from liveevents.runtime.streams import EventStream, ObservableValue, Subscription

logger = logging.getLogger(__name__)


class InventorySlot:
    """One item id and its observable amount."""

    def __init__(self, item_id: str, amount: int) -> None:
        self.item_id = item_id
        self.amount: ObservableValue[int] = ObservableValue(amount, f"slot:{item_id}")

    def __repr__(self) -> str:
        return f"InventorySlot({self.item_id!r}, {self.amount.value})"


def _check_amount(amount: int) -> None:
    if amount <= 0:
        raise ValueError(f"amount must be > 0, got {amount}")


class Inventory:
    """Item amounts with change notifications.

    Slots are kept in insertion order.  A slot whose amount reaches zero is
    removed.
    """

    def __init__(self, origin: Mapping[str, int] | None = None) -> None:
        self._slots: dict[str, InventorySlot] = {}
        self._lock = RLock()
        self._disposed = False
        self.slot_added: EventStream[InventorySlot] = EventStream("slot_added")
        self.slot_removed: EventStream[InventorySlot] = EventStream("slot_removed")

        for item_id, amount in (origin or {}).items():
            _check_amount(amount)
            self._slots[item_id] = InventorySlot(item_id, amount)

    @property
    def slots(self) -> tuple[InventorySlot, ...]:
        with self._lock:
            return tuple(self._slots.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def amount_of(self, item_id: str) -> int:
        slot = self._slots.get(item_id)
        return slot.amount.value if slot is not None else 0

    def to_dict(self) -> dict[str, int]:
        with self._lock:
            return {item_id: slot.amount.value for item_id, slot in self._slots.items()}

    def try_add(self, item_id: str, amount: int) -> bool:
        """Add ``amount`` of ``item_id``.  Returns False once the inventory is disposed."""
        _check_amount(amount)
        added: InventorySlot | None = None
        with self._lock:
            if self._disposed:
                return False
            slot = self._slots.get(item_id)
            if slot is None:
                added = self._slots[item_id] = InventorySlot(item_id, amount)
            else:
                slot.amount.set(slot.amount.value + amount)
        if added is not None:
            self.slot_added.emit(added)
        return True

    def try_remove(self, item_id: str, amount: int) -> bool:
        """Remove ``amount`` of ``item_id``.

        Returns False (and changes nothing) when fewer than ``amount`` items
        are held or the inventory is disposed.  Raises UnknownItemError when
        there is no slot for ``item_id``.
        """
        _check_amount(amount)
        removed: InventorySlot | None = None
        with self._lock:
            if self._disposed:
                return False
            slot = self._slots.get(item_id)
            if slot is None:
                raise UnknownItemError(item_id)
            result = slot.amount.value - amount
            if result < 0:
                logger.debug(
                    "Inventory: cannot remove %d of %s, only %d held", amount, item_id, slot.amount.value
                )
                return False
            # An emptied slot leaves the map before subscribers see 0, so a
            # re-add from a subscriber starts a fresh slot.
            if result == 0:
                removed = self._slots.pop(item_id)
            slot.amount.set(result)
        if removed is not None:
            self.slot_removed.emit(removed)
            removed.amount.close()
        return True

    def add_pack(self, pack: Iterable[tuple[str, int]]) -> None:
        """Add several items.  All amounts are checked before any is applied."""
        items = list(pack)
        for _, amount in items:
            _check_amount(amount)
        for item_id, amount in items:
            self.try_add(item_id, amount)

    def dispose(self) -> None:
        with self._lock:
            self._disposed = True
            slots = list(self._slots.values())
        for slot in slots:
            slot.amount.close()
        self.slot_added.close()
        self.slot_removed.close()


class InventoryConnector:
    """Links two inventories so items removed from one land in the other.

    Every drop in a slot amount of either inventory is added to the other
    inventory under the same item id.  When the other side refuses the add,
    the amount goes back to the inventory it came from.  Slots created after
    the connector are followed too.
    """

    def __init__(self, first: Inventory, second: Inventory) -> None:
        self._lock = RLock()
        self._slot_subscriptions: dict[InventorySlot, Subscription] = {}
        self._subscriptions: list[Subscription] = []

        for source, target in ((first, second), (second, first)):
            for slot in source.slots:
                self._watch(source, target, slot)
            self._subscriptions.append(
                source.slot_added.subscribe(
                    lambda slot, source=source, target=target: self._watch(source, target, slot)
                )
            )
            self._subscriptions.append(source.slot_removed.subscribe(self._unwatch))

    @property
    def watched_slots(self) -> int:
        with self._lock:
            return len(self._slot_subscriptions)

    def dispose(self) -> None:
        with self._lock:
            subscriptions = self._subscriptions + list(self._slot_subscriptions.values())
            self._subscriptions = []
            self._slot_subscriptions.clear()
        for subscription in subscriptions:
            subscription.dispose()

    def _watch(self, source: Inventory, target: Inventory, slot: InventorySlot) -> None:
        previous = slot.amount.value

        def on_amount(current: int) -> None:
            nonlocal previous
            dropped = previous - current
            previous = current
            if dropped > 0:
                self._transfer(source, target, slot.item_id, dropped)

        with self._lock:
            self._slot_subscriptions[slot] = slot.amount.subscribe(on_amount)

    def _unwatch(self, slot: InventorySlot) -> None:
        with self._lock:
            subscription = self._slot_subscriptions.pop(slot, None)
        if subscription is not None:
            subscription.dispose()

    @staticmethod
    def _transfer(source: Inventory, target: Inventory, item_id: str, amount: int) -> None:
        if target.try_add(item_id, amount):
            return
        logger.debug("InventoryConnector: %d of %s refused, returned to source", amount, item_id)
        source.try_add(item_id, amount)
