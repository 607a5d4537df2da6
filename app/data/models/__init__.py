#import all models so SQLAlchemy registers them in Base.metadata

from app.data.models.user import UserModel, AddressModel
from app.data.models.product import ProductModel, ProductImageModel
from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel, OrderItemModel, OrderStatusEventModel
from app.data.models.review import ReviewModel

__all__ = [
    "UserModel",
    "AddressModel",
    "ProductModel",
    "ProductImageModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusEventModel",
    "ReviewModel",
]
