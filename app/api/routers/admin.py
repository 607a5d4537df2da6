# app/api/routers/admin.py
from fastapi import APIRouter, Depends

from app.api.deps import get_order_service, get_product_service, get_review_service
from app.api.errors import http_error
from app.api.identity import require_admin
from app.domain.errors import ShopError
from app.domain.schemas import (
    AdvanceIn,
    ImageIn,
    OrderOut,
    ProductCreate,
    ProductOut,
    ReportIssueIn,
    ReviewOut,
    SlugUpdate,
)
from app.services.order_service import OrderService
from app.services.product_service import ProductService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# orders

@router.post("/orders/{order_id}/advance", response_model=OrderOut)
def advance_order(
    order_id: int,
    payload: AdvanceIn,
    svc: OrderService = Depends(get_order_service),
):
    try:
        return svc.advance(order_id, payload.next_status)
    except ShopError as e:
        raise http_error(e)


@router.post("/orders/{order_id}/payment", response_model=OrderOut)
def record_payment(order_id: int, svc: OrderService = Depends(get_order_service)):
    try:
        return svc.record_payment(order_id)
    except ShopError as e:
        raise http_error(e)


@router.post("/orders/{order_id}/report-issue", response_model=OrderOut)
def report_issue(
    order_id: int,
    payload: ReportIssueIn,
    svc: OrderService = Depends(get_order_service),
):
    """
    Refund when the order is paid, cancel when it is not.
    """
    try:
        return svc.report_issue(order_id, payload.reason_code)
    except ShopError as e:
        raise http_error(e)


# products

@router.post("/products", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, svc: ProductService = Depends(get_product_service)):
    try:
        return svc.create_product(payload.name, payload.price, payload.cost_price, payload.slug)
    except (ShopError, ValueError) as e:
        raise http_error(e)


@router.patch("/products/{product_id}/slug", response_model=ProductOut)
def update_slug(
    product_id: int,
    payload: SlugUpdate,
    svc: ProductService = Depends(get_product_service),
):
    try:
        return svc.update_slug(product_id, payload.slug)
    except (ShopError, ValueError) as e:
        raise http_error(e)


@router.post("/products/{product_id}/images", response_model=ProductOut, status_code=201)
def add_image(
    product_id: int,
    payload: ImageIn,
    svc: ProductService = Depends(get_product_service),
):
    try:
        return svc.add_image(product_id, payload.url, payload.primary)
    except ShopError as e:
        raise http_error(e)


@router.post("/products/{product_id}/images/{image_id}/primary", response_model=ProductOut)
def set_primary_image(
    product_id: int,
    image_id: int,
    svc: ProductService = Depends(get_product_service),
):
    try:
        return svc.set_primary_image(product_id, image_id)
    except ShopError as e:
        raise http_error(e)


# reviews

@router.post("/reviews/{review_id}/approve", response_model=ReviewOut)
def approve_review(review_id: int, svc: ReviewService = Depends(get_review_service)):
    try:
        return svc.approve_review(review_id)
    except ShopError as e:
        raise http_error(e)
