# app/api/routers/reviews.py
from fastapi import APIRouter, Depends

from app.api.deps import get_review_service
from app.api.errors import http_error
from app.api.identity import current_user_id
from app.domain.errors import ShopError
from app.domain.schemas import ReviewCreate, ReviewOut
from app.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewOut, status_code=201)
def submit_review(
    payload: ReviewCreate,
    user_id: int = Depends(current_user_id),
    svc: ReviewService = Depends(get_review_service),
):
    """
    Only delivered orders can be reviewed, the review stays hidden until
    an admin approves it.
    """
    try:
        return svc.submit_review(
            user_id=user_id,
            order_id=payload.order_id,
            product_id=payload.product_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    except ShopError as e:
        raise http_error(e)
