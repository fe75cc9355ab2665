from typing import List
import uuid

from fastapi import APIRouter, status

from shop.api.deps import DB
from shop.schemas.address import AddressCreate, AddressUpdate, AddressResponse
from shop.services.address_service import AddressService


router = APIRouter(tags=["Addresses"])


@router.get("/users/{user_id}/addresses", response_model=List[AddressResponse])
async def list_user_addresses(user_id: uuid.UUID, db: DB):
    """Saved addresses of a user, default first."""
    addresses = await AddressService(db).get_user_addresses(user_id)
    return [AddressResponse.model_validate(a) for a in addresses]


@router.post(
    "/users/{user_id}/addresses",
    response_model=AddressResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_address(user_id: uuid.UUID, data: AddressCreate, db: DB):
    address = await AddressService(db).create_address(user_id, data)
    return AddressResponse.model_validate(address)


@router.get("/addresses/{address_id}", response_model=AddressResponse)
async def get_address(address_id: uuid.UUID, db: DB):
    address = await AddressService(db).get_address_by_id(address_id)
    return AddressResponse.model_validate(address)


@router.patch("/addresses/{address_id}", response_model=AddressResponse)
async def update_address(address_id: uuid.UUID, data: AddressUpdate, db: DB):
    address = await AddressService(db).update_address(address_id, data)
    return AddressResponse.model_validate(address)


@router.delete("/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(address_id: uuid.UUID, db: DB):
    await AddressService(db).delete_address(address_id)
