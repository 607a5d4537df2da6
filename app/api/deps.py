# app/api/deps.py
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.services.cart_service import CartService
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_client import PaymentClient
from app.services.product_service import ProductService
from app.services.review_service import ReviewService
from app.services.user_service import UserService


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_payment_client() -> PaymentClient:
    return PaymentClient()


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService()


def get_cart_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> CartService:
    return CartService(db=db, lock_service=lock_service)


def get_order_service(
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
    notification_service: NotificationService = Depends(get_notification_service),
    lock_service: LockService = Depends(get_lock_service),
) -> OrderService:
    return OrderService(
        db=db,
        payment_client=payment_client,
        notification_service=notification_service,
        lock_service=lock_service,
    )


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)
