"""Per-key mutual exclusion around command dispatch.

Each Protean command already runs in its own Unit of Work. What a Unit of
Work does not give us is ordering between two requests that read-modify-write
the same records: two add-to-cart calls for one customer, or two placements
racing for the last unit of a product. Those commands are dispatched through
``process_serialized`` while holding the relevant keys.

Lock order is fixed: a cart or order key is always taken before the stock
key, never the other way around, so two dispatches can never wait on each
other in a cycle.
"""

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from typing import Any

import structlog
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

STOCK_KEY = "stock"


def cart_key(customer_id: str) -> str:
    return f"cart:{customer_id}"


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


class KeyedLocks:
    """Re-entrant locks, one per key, created on first use.

    An entry counts the threads holding or waiting on its lock and is
    discarded when that count drops to zero, so the table only ever holds
    keys that are in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, list] = {}  # key -> [RLock, holders and waiters]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._guard:
            return key in self._entries

    @contextmanager
    def _holding(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.RLock(), 0]
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire the locks for ``keys`` in the order given, release in reverse."""
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._holding(key))
            yield


_locks = KeyedLocks()


@contextmanager
def serialized(*keys: str) -> Iterator[None]:
    with _locks.hold(*keys):
        yield


def process_serialized(command: Any, *keys: str) -> Any:
    """Dispatch ``command`` synchronously while holding ``keys``."""
    with serialized(*keys):
        logger.debug("command_dispatched", command=command.__class__.__name__, keys=list(keys))
        return current_domain.process(command, asynchronous=False)
