# app/api/routers/orders.py
from fastapi import APIRouter, Depends

from app.api.deps import get_order_service, get_review_service
from app.api.errors import http_error
from app.api.identity import current_user_id
from app.domain.errors import ShopError
from app.domain.schemas import CanReviewOut, CheckoutIn, OrderOut
from app.services.order_service import OrderService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    user_id: int = Depends(current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    """
    Creates an order from the user's cart, prices are taken from the
    catalog at this moment.
    """
    try:
        return svc.checkout(user_id, payload.address_id)
    except (ShopError, ValueError) as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.get_order(order_id, user_id)
    except (ShopError, PermissionError) as e:
        raise http_error(e)


@router.get("/{order_id}/can-review", response_model=CanReviewOut)
def can_review(
    order_id: int,
    user_id: int = Depends(current_user_id),
    reviews: ReviewService = Depends(get_review_service),
):
    return {"order_id": order_id, "eligible": reviews.can_review(user_id, order_id)}
