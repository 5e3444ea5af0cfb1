from typing import Iterable, List, Optional, Tuple

from app.constants.order_status import OrderStatus
from app.errors import NotFoundError
from app.models.order import Order
from app.services.record_store import RecordStore

ORDER_PREFIX = "cod_order:"

# minimal secondary indexes; values only carry the order id
STATUS_INDEX = "idx:order:status:"
BUYER_INDEX = "idx:order:buyer:"
SELLER_INDEX = "idx:order:seller:"


def order_key(order_id: str) -> str:
    return f"{ORDER_PREFIX}{order_id}"


def _status_index_key(status: OrderStatus, order_id: str) -> str:
    return f"{STATUS_INDEX}{OrderStatus(status).value}:{order_id}"


class OrderRepository:
    """Order persistence and the queries the console and tracking views need."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get(self, order_id: str) -> Optional[Order]:
        data = self.store.get(order_key(order_id))
        return Order.model_validate(data) if data else None

    def load(self, order_id: str) -> Tuple[Order, int]:
        data, version = self.store.get_versioned(order_key(order_id))
        if data is None:
            raise NotFoundError("Order", order_id)
        return Order.model_validate(data), version

    def add(self, order: Order) -> None:
        self.store.set(order_key(order.id), order.model_dump(mode="json"))
        ref = {"order_id": order.id}
        self.store.set(_status_index_key(order.status, order.id), ref)
        self.store.set(f"{BUYER_INDEX}{order.buyer_id}:{order.id}", ref)
        self.store.set(f"{SELLER_INDEX}{order.seller_id}:{order.id}", ref)

    def save(self, order: Order, expected_version: int, previous_status: OrderStatus) -> int:
        version = self.store.set(
            order_key(order.id), order.model_dump(mode="json"), expected_version=expected_version
        )
        if order.status != previous_status:
            self.store.delete(_status_index_key(previous_status, order.id))
            self.store.set(_status_index_key(order.status, order.id), {"order_id": order.id})
        return version

    def list_all(self) -> List[Order]:
        return [Order.model_validate(d) for d in self.store.scan_by_prefix(ORDER_PREFIX)]

    def list_by_status(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        ids = []
        for status in statuses:
            ids.extend(
                ref["order_id"]
                for ref in self.store.scan_by_prefix(f"{STATUS_INDEX}{OrderStatus(status).value}:")
            )
        return self._resolve(ids)

    def list_by_buyer(self, buyer_id: str) -> List[Order]:
        refs = self.store.scan_by_prefix(f"{BUYER_INDEX}{buyer_id}:")
        return self._resolve(ref["order_id"] for ref in refs)

    def list_by_seller(self, seller_id: str) -> List[Order]:
        refs = self.store.scan_by_prefix(f"{SELLER_INDEX}{seller_id}:")
        return self._resolve(ref["order_id"] for ref in refs)

    def _resolve(self, order_ids: Iterable[str]) -> List[Order]:
        orders = []
        for order_id in order_ids:
            order = self.get(order_id)
            if order is not None:
                orders.append(order)
        return orders
