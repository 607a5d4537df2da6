# app/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_product_service, get_review_service
from app.api.errors import http_error
from app.domain.errors import ShopError
from app.domain.schemas import ProductOut, ReviewOut
from app.services.product_service import ProductService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{slug}", response_model=ProductOut)
def get_product(slug: str, svc: ProductService = Depends(get_product_service)):
    try:
        return svc.get_product_by_slug(slug)
    except ShopError as e:
        raise http_error(e)


@router.get("/{product_id}/reviews", response_model=List[ReviewOut])
def list_reviews(product_id: int, reviews: ReviewService = Depends(get_review_service)):
    return reviews.list_product_reviews(product_id)
