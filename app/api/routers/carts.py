#app/api/routers/carts.py
from fastapi import APIRouter, Depends

from app.api.deps import get_cart_service
from app.api.errors import http_error
from app.api.identity import current_owner, current_user_id, session_token
from app.domain.errors import ShopError
from app.domain.owner import CartOwner
from app.domain.schemas import CartOut, ItemIn, QuantityIn
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(
    owner: CartOwner = Depends(current_owner),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_cart(owner)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    owner: CartOwner = Depends(current_owner),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.add_product(owner, payload.product_id, payload.quantity)
    except (ShopError, ValueError) as e:
        raise http_error(e)


@router.patch("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: QuantityIn,
    owner: CartOwner = Depends(current_owner),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.update_quantity(owner, product_id, payload.quantity)
    except (ShopError, ValueError) as e:
        raise http_error(e)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    owner: CartOwner = Depends(current_owner),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.remove_product(owner, product_id)
    except ShopError as e:
        raise http_error(e)


@router.post("/reconcile", response_model=CartOut)
def reconcile(
    user_id: int = Depends(current_user_id),
    token: str | None = Depends(session_token),
    svc: CartService = Depends(get_cart_service),
):
    """
    Called by the login flow: merges the guest cart of the session into
    the user's cart.
    """
    try:
        return svc.reconcile(token, user_id)
    except ShopError as e:
        raise http_error(e)
