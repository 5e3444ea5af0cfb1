from typing import Optional

from app.models.product import Product
from app.models.user import User
from app.services.record_store import RecordStore

USER_PREFIX = "user:"
PRODUCT_PREFIX = "product:"


def get_user(store: RecordStore, user_id: str) -> Optional[User]:
    data = store.get(f"{USER_PREFIX}{user_id}")
    return User.model_validate(data) if data else None


def save_user(store: RecordStore, user: User) -> None:
    store.set(f"{USER_PREFIX}{user.id}", user.model_dump(mode="json"))


def get_product(store: RecordStore, product_id: str) -> Optional[Product]:
    data = store.get(f"{PRODUCT_PREFIX}{product_id}")
    return Product.model_validate(data) if data else None


def save_product(store: RecordStore, product: Product) -> None:
    store.set(f"{PRODUCT_PREFIX}{product.id}", product.model_dump(mode="json"))
