from typing import Dict, List, Optional

from app.constants.order_status import next_status
from app.models.order import Order
from app.models.product import Product
from app.models.user import User
from app.schemas.summary_schemas import BuyerSummary, OrderView, ProductSummary, SellerSummary
from app.services.directory import get_product, get_user
from app.services.record_store import RecordStore


class OrderViewBuilder:
    """Denormalises orders with product, seller and buyer display data.

    Lookups are memoised for the lifetime of the builder, so one listing
    reads each referenced record once.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._users: Dict[str, Optional[User]] = {}
        self._products: Dict[str, Optional[Product]] = {}

    def _user(self, user_id: str) -> Optional[User]:
        if user_id not in self._users:
            self._users[user_id] = get_user(self.store, user_id)
        return self._users[user_id]

    def _product(self, product_id: str) -> Optional[Product]:
        if product_id not in self._products:
            self._products[product_id] = get_product(self.store, product_id)
        return self._products[product_id]

    def build(self, order: Order) -> OrderView:
        product = self._product(order.product_id)
        seller = self._user(order.seller_id)
        buyer = self._user(order.buyer_id)
        upcoming = next_status(order.status)

        return OrderView(
            **order.model_dump(),
            product=ProductSummary(title=product.title, price=product.price, images=product.images)
            if product else None,
            seller=SellerSummary(name=seller.name, phone=seller.phone, location=seller.location)
            if seller else None,
            buyer=BuyerSummary(name=buyer.name, phone=buyer.phone) if buyer else None,
            next_status=upcoming.value if upcoming else None,
        )

    def build_many(self, orders: List[Order]) -> List[OrderView]:
        return [self.build(order) for order in orders]
