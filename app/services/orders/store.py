import copy
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

OrderRecord = Dict[str, Any]


class OrderStore:
    """In-memory ordered view of orders with optimistic local mutations.

    ``apply_patch`` updates the cached row immediately and remembers the
    pre-mutation state; the server's answer is then either folded in with
    ``reconcile`` or undone with ``rollback``. Rows pushed by other writers
    arrive through ``apply_remote_change``, which patches in place and never
    reorders the view.
    """

    def __init__(self, orders: Optional[Iterable[OrderRecord]] = None):
        self._order: List[str] = []
        self._rows: Dict[str, OrderRecord] = {}
        self._snapshots: Dict[str, OrderRecord] = {}
        if orders is not None:
            self.load(orders)

    @staticmethod
    def _key(order_id: Any) -> str:
        return str(order_id)

    def load(self, orders: Iterable[OrderRecord]) -> None:
        """Replace the view with ``orders`` in the given order."""
        self._order = []
        self._rows = {}
        self._snapshots = {}
        for row in orders:
            key = self._key(row["id"])
            if key not in self._rows:
                self._order.append(key)
            self._rows[key] = dict(row)

    def get(self, order_id: Any) -> Optional[OrderRecord]:
        row = self._rows.get(self._key(order_id))
        return dict(row) if row is not None else None

    def items(self) -> List[OrderRecord]:
        return [dict(self._rows[key]) for key in self._order]

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, order_id: Any) -> bool:
        return self._key(order_id) in self._rows

    def apply_patch(self, order_id: Any, patch: Dict[str, Any]) -> OrderRecord:
        """Optimistically apply ``patch`` to a cached row.

        Raises:
            KeyError: The order is not in the view
        """
        key = self._key(order_id)
        if key not in self._rows:
            raise KeyError(order_id)
        # Keep the oldest snapshot if mutations stack up before the server answers
        self._snapshots.setdefault(key, copy.deepcopy(self._rows[key]))
        self._rows[key].update(patch)
        return dict(self._rows[key])

    def reconcile(self, order_id: Any, server_order: OrderRecord) -> OrderRecord:
        """Replace the optimistic row with the server's version."""
        key = self._key(order_id)
        self._snapshots.pop(key, None)
        if key not in self._rows:
            self._order.append(key)
        self._rows[key] = dict(server_order)
        return dict(self._rows[key])

    def rollback(self, order_id: Any) -> Optional[OrderRecord]:
        """Restore the row as it was before the pending optimistic patch."""
        key = self._key(order_id)
        snapshot = self._snapshots.pop(key, None)
        if snapshot is None:
            return self.get(order_id)
        self._rows[key] = snapshot
        return dict(snapshot)

    def apply_remote_change(self, order: OrderRecord) -> bool:
        """Patch a cached row from an externally pushed change.

        Unknown ids are ignored; the row keeps its position.
        """
        key = self._key(order["id"])
        if key not in self._rows:
            return False
        self._rows[key].update(order)
        return True

    async def mutate(
        self,
        order_id: Any,
        patch: Dict[str, Any],
        send: Callable[[], Awaitable[OrderRecord]],
    ) -> OrderRecord:
        """Apply ``patch`` locally, await ``send`` and reconcile with its result.

        On failure the optimistic change is rolled back and the error re-raised.
        """
        self.apply_patch(order_id, patch)
        try:
            server_order = await send()
        except Exception:
            logger.warning(f"Mutation of order {order_id} failed; rolling back")
            self.rollback(order_id)
            raise
        return self.reconcile(order_id, server_order)
