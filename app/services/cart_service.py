from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Dict, Any

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.errors import ConflictError, NotFoundError, StorageError
from app.domain.owner import CartOwner, SessionOwner, UserOwner, SESSION
from app.repos.cart_repo import CartRepo
from app.repos.product_repo import ProductRepo
from app.services.lock_service import LockService
from app.utils.settings import GUEST_CART_TTL_SECONDS, RECONCILE_LOCK_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases for guest (session) and user carts.
    commands (add, update, remove, reconcile) modify state
    query (get) read only

    Prices are never stored on cart lines, views read the current
    selling price of each product.
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service

    #query
    def get_cart(self, owner: CartOwner) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_owner(owner)
        return self._to_dict(owner, cart)

    def _to_dict(self, owner: CartOwner, cart: CartModel | None) -> Dict[str, Any]:
        if cart is None:
            return {
                "cart_id": None,
                "owner_kind": owner.kind,
                "owner_ref": owner.ref,
                "items": [],
                "total": Decimal("0.00"),
                "expires_at": None,
            }

        items = self.repo.get_cart_items(cart.id)
        products = self.products.get_products(i.product_id for i in items)

        lines = []
        for i in items:
            product = products[i.product_id]
            lines.append({
                "product_id": i.product_id,
                "name": product.name,
                "quantity": i.quantity,
                "price": product.price,
            })
        total = sum((line["price"] * line["quantity"] for line in lines), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "owner_kind": cart.owner_kind,
            "owner_ref": cart.owner_ref,
            "items": lines,
            "total": total,
            "expires_at": cart.expires_at,
        }

    #commands
    def add_product(self, owner: CartOwner, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        product = self.products.get_product(product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f"Product {product_id} not found")

        try:
            cart = self._get_or_create(owner)
            existing_item = self.repo.get_cart_item(cart.id, product_id)

            if existing_item:
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
                )
                existing_item.quantity += quantity
            else:
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
                )

            self._bump_version(cart)
            self.repo.commit()
        except ConflictError:
            self.repo.rollback()
            raise
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another request") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to add product {product_id}: {e}", exc_info=True)
            raise StorageError("Could not update cart") from e

        return self.get_cart(owner)

    def update_quantity(self, owner: CartOwner, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")
        if quantity == 0:
            return self.remove_product(owner, product_id)

        cart = self.repo.get_cart_by_owner(owner)
        item = self.repo.get_cart_item(cart.id, product_id) if cart else None
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in the cart")

        try:
            item.quantity = quantity
            self._bump_version(cart)
            self.repo.commit()
        except ConflictError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not update cart") from e

        logger.info(f"Cart {cart.id}: product {product_id} quantity set to {quantity}")
        return self.get_cart(owner)

    def remove_product(self, owner: CartOwner, product_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_owner(owner)
        item = self.repo.get_cart_item(cart.id, product_id) if cart else None
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in the cart")

        try:
            self.repo.delete_cart_item(item)
            self._bump_version(cart)
            self.repo.commit()
        except ConflictError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not update cart") from e

        logger.info(f"Product {product_id} removed from cart {cart.id}")
        return self.get_cart(owner)

    def reconcile(self, session_token: str | None, user_id: int) -> Dict[str, Any]:
        """
        Merge the guest cart of `session_token` into the cart of `user_id`.

        Lines for the same product are coalesced by summing quantities,
        other guest lines move to the user cart. The guest cart is gone
        afterwards. Everything happens in one transaction: on failure the
        store keeps the pre-merge state.

        Raises ConflictError when another reconciliation for the same user
        is running, StorageError on persistence failure.
        """
        user_owner = UserOwner(user_id)
        lock_key = f"cart:reconcile:user:{user_id}"
        token = self.lock_service.new_token()

        try:
            locked = self.lock_service.acquire(lock_key, token, RECONCILE_LOCK_TTL_SECONDS)
        except RedisError as e:
            raise StorageError("Lock store unavailable") from e
        if not locked:
            logger.warning(f"Reconciliation already running for user {user_id}")
            raise ConflictError(f"Cart reconciliation for user {user_id} already in progress")

        try:
            return self._reconcile(session_token, user_owner)
        finally:
            try:
                self.lock_service.release(lock_key, token)
            except RedisError as e:
                # lock expires on its own after the TTL
                logger.warning(f"Failed to release {lock_key}: {e}")

    def _reconcile(self, session_token: str | None, user_owner: UserOwner) -> Dict[str, Any]:
        try:
            guest = None
            if session_token:
                guest = self.repo.get_cart_by_owner(SessionOwner(session_token), for_update=True)
            user_cart = self.repo.get_cart_by_owner(user_owner, for_update=True)

            if guest is None:
                #nothing to merge, user cart stays as it is
                if user_cart is None:
                    user_cart = self.repo.create_cart(user_owner)
                    self.repo.commit()
                    return self._to_dict(user_owner, user_cart)
                view = self._to_dict(user_owner, user_cart)
                # read-only path, end the transaction holding the row lock
                self.repo.rollback()
                return view

            if user_cart is None:
                logger.info(f"Retagging guest cart {guest.id} to user {user_owner.user_id}")
                user_cart = self.repo.create_cart(user_owner)
            else:
                logger.info(f"Merging guest cart {guest.id} into cart {user_cart.id}")

            user_lines = {i.product_id: i for i in self.repo.get_cart_items(user_cart.id)}

            for item in list(guest.items):
                existing = user_lines.get(item.product_id)
                if existing is not None:
                    existing.quantity += item.quantity
                else:
                    # retag: the row now belongs to the user cart
                    item.cart = user_cart
                    user_lines[item.product_id] = item

            self._bump_version(user_cart)
            self.repo.delete_cart(guest)
            self.repo.commit()
        except ConflictError:
            self.repo.rollback()
            raise
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Concurrent cart write for user {user_owner.user_id}: {e}")
            raise ConflictError("Cart was modified by another request") from e
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Reconciliation for user {user_owner.user_id} failed: {e}", exc_info=True)
            raise StorageError("Could not reconcile carts") from e

        return self._to_dict(user_owner, user_cart)

    def purge_expired_guest_carts(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        carts = self.repo.get_expired_guest_carts(now)

        try:
            for cart in carts:
                self.repo.delete_cart(cart)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise StorageError("Could not purge guest carts") from e

        logger.info(f"Purged {len(carts)} expired guest carts")
        return len(carts)

    def _get_or_create(self, owner: CartOwner) -> CartModel:
        cart = self.repo.get_cart_by_owner(owner)
        if cart is None:
            cart = self.repo.create_cart(owner, expires_at=self._guest_expiry(owner))
            logger.info(f"Created cart {cart.id} for {owner.kind.lower()} {owner.ref}")
        return cart

    def _guest_expiry(self, owner: CartOwner) -> datetime | None:
        #guest carts live GUEST_CART_TTL_SECONDS after the last action
        if isinstance(owner, SessionOwner):
            return datetime.now(timezone.utc) + timedelta(seconds=GUEST_CART_TTL_SECONDS)
        return None

    def _bump_version(self, cart: CartModel) -> None:
        new_data = {"version": cart.version + 1}
        if cart.owner_kind == SESSION:
            new_data["expires_at"] = self._guest_expiry(SessionOwner(cart.owner_ref))

        # Optimistic locking
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data=new_data,
        )
        if rowcount == 0:
            raise ConflictError("Cart was modified by another request")
