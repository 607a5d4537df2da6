# app/services/review_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.review import ReviewModel
from app.domain.errors import ConflictError, NotEligibleError, NotFoundError, StorageError
from app.domain.order_status import OrderStatus
from app.repos.order_repo import OrderRepo
from app.repos.review_repo import ReviewRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ReviewService:
    def __init__(self, db: Session):
        self.repo = ReviewRepo(db)
        self.orders = OrderRepo(db)

    def can_review(self, user_id: int, order_id: int) -> bool:
        """True only for the owner of a DELIVERED order, never writes."""
        order = self.orders.get_order(order_id)
        if order is None or order.user_id != user_id:
            return False
        return order.status == OrderStatus.DELIVERED.value

    def submit_review(
        self,
        user_id: int,
        order_id: int,
        product_id: int,
        rating: int,
        comment: str | None = None,
    ) -> ReviewModel:
        if not self.can_review(user_id, order_id):
            raise NotEligibleError(f"Order {order_id} is not eligible for review")

        order = self.orders.get_order(order_id)
        if product_id not in {i.product_id for i in order.items}:
            raise NotEligibleError(f"Product {product_id} is not part of order {order_id}")

        try:
            review = self.repo.create_review(
                ReviewModel(
                    user_id=user_id,
                    order_id=order_id,
                    product_id=product_id,
                    rating=rating,
                    comment=comment,
                    approved=False,
                )
            )
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError("Product already reviewed for this order") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not save review") from e

        logger.info(f"Review {review.id} by user {user_id} waits for approval")
        return review

    def approve_review(self, review_id: int) -> ReviewModel:
        review = self.repo.get_review(review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")

        if not review.approved:
            review.approved = True
            try:
                self.repo.commit()
            except SQLAlchemyError as e:
                self.repo.rollback()
                raise StorageError("Could not approve review") from e
            logger.info(f"Review {review_id} approved")
        return review

    def list_product_reviews(self, product_id: int) -> list[ReviewModel]:
        return self.repo.get_approved_for_product(product_id)
