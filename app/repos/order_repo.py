# app/repos/order_repo.py
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel, OrderStatusEventModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int, for_update: bool = False) -> OrderModel | None:
        # populate_existing: status is always re-read from the row, never the identity map
        return self.db.get(
            OrderModel,
            order_id,
            populate_existing=True,
            with_for_update=for_update or None,
        )

    def update_order_status(self, order_id: int, old_version: int, new_data: dict) -> int:
        return (
            self.db.query(OrderModel)
            .filter(OrderModel.id == order_id, OrderModel.version == old_version)
            .update({**new_data, "version": old_version + 1})
        )

    def add_event(self, event: OrderStatusEventModel) -> OrderStatusEventModel:
        self.db.add(event)
        self.db.flush()
        return event

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
