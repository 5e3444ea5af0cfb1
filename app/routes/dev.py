from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.dependencies.services import get_store
from app.models.product import Product
from app.models.user import User, UserLocation, UserRole
from app.services.directory import save_product, save_user
from app.services.record_store import RecordStore
from app.utils.token import create_access_token

router = APIRouter()

DEMO_USERS = [
    User(id="demo-admin", name="Marketplace Admin", email="admin@example.com",
         phone="+1 555 0100", role=UserRole.admin),
    User(id="demo-seller", name="Rose Garden", email="rose@flowers.com",
         phone="+1 555 0101", role=UserRole.seller,
         location=UserLocation(city="New York", lat=40.7128, lng=-74.0060)),
    User(id="demo-buyer", name="Demo Buyer", email="buyer@example.com",
         phone="+1 555 0102", role=UserRole.buyer),
]

DEMO_PRODUCTS = [
    Product(id="demo-bouquet", seller_id="demo-seller", title="Spring bouquet",
            price=Decimal("15.00"), category="flowers"),
    Product(id="demo-arrangement", seller_id="demo-seller", title="Table arrangement",
            price=Decimal("42.50"), category="flowers"),
]


@router.post("/seed")
def seed_demo_data(store: RecordStore = Depends(get_store)):
    """
    Local-only: write demo users and products and hand back their tokens.
    """
    if settings.env != "local":
        raise HTTPException(404, "Not found")

    for user in DEMO_USERS:
        save_user(store, user)
    for product in DEMO_PRODUCTS:
        save_product(store, product)
    store.commit()

    return {
        "message": "Demo data seeded",
        "products": [p.id for p in DEMO_PRODUCTS],
        "tokens": {u.role.value: create_access_token({"sub": u.id}) for u in DEMO_USERS},
    }
