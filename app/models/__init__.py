from app.models.kv_record import KVRecord
from app.models.user import User
from app.models.product import Product
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.models.refund import RefundRequest
from app.models.return_request import ReturnRequest

# only KVRecord is a table; the rest are documents stored inside it
