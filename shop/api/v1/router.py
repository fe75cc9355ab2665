from fastapi import APIRouter

from shop.api.v1.endpoints import (
    # Identity & referral graph
    users,
    addresses,
    # Catalog
    categories,
    products,
    # Shopping
    cart,
    orders,
    # Referral program
    distributors,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Users ====================
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"]
)

# ==================== Addresses (/users/{id}/addresses, /addresses/{id}) ====================
api_router.include_router(
    addresses.router,
    tags=["Addresses"]
)

# ==================== Catalog ====================
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["Categories"]
)
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

# ==================== Cart (/users/{id}/cart, /cart/{item_id}) ====================
api_router.include_router(
    cart.router,
    tags=["Cart"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Distributors & Commissions ====================
api_router.include_router(
    distributors.router,
    tags=["Distributors"]
)
