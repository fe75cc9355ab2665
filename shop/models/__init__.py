# Models module - importing here registers every table on Base.metadata
from shop.models.user import User, UserRole
from shop.models.category import Category
from shop.models.product import Product, ProductType
from shop.models.address import Address
from shop.models.cart import CartItem
from shop.models.order import Order, OrderItem, OrderStatusHistory, OrderStatus, PaymentStatus
from shop.models.distributor import Distributor, DistributorStatus, Commission, CommissionStatus

__all__ = [
    "User",
    "UserRole",
    "Category",
    "Product",
    "ProductType",
    "Address",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderStatus",
    "PaymentStatus",
    "Distributor",
    "DistributorStatus",
    "Commission",
    "CommissionStatus",
]
