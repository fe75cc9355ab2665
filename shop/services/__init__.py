# Services module
from shop.services.catalog_service import CatalogService
from shop.services.user_service import UserService
from shop.services.address_service import AddressService
from shop.services.cart_service import CartService
from shop.services.order_service import OrderService
from shop.services.order_lifecycle_service import OrderLifecycleService
from shop.services.distributor_service import DistributorService

# Referral commission strategies
from shop.services.referral_service import (
    ReferralChainStrategy,
    ReferralCodeStrategy,
    get_commission_strategy,
)

__all__ = [
    "CatalogService",
    "UserService",
    "AddressService",
    "CartService",
    "OrderService",
    "OrderLifecycleService",
    "DistributorService",
    # Referral
    "ReferralChainStrategy",
    "ReferralCodeStrategy",
    "get_commission_strategy",
]
