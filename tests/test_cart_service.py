from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.domain.errors import NotFoundError
from app.domain.owner import SessionOwner, UserOwner
from app.repos.cart_repo import CartRepo

GUEST = SessionOwner("guest-session-0002")


def test_duplicate_product_lines_are_coalesced(cart_service, make_product):
    keyboard = make_product("Keyboard")

    cart_service.add_product(GUEST, keyboard.id, 1)
    cart = cart_service.add_product(GUEST, keyboard.id, 2)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_rejected(cart_service, make_product, quantity):
    keyboard = make_product("Keyboard")

    with pytest.raises(ValueError):
        cart_service.add_product(GUEST, keyboard.id, quantity)


def test_unknown_product_rejected(cart_service):
    with pytest.raises(NotFoundError):
        cart_service.add_product(GUEST, 999, 1)


def test_inactive_product_rejected(db, cart_service, make_product):
    keyboard = make_product("Keyboard")
    keyboard.is_active = False
    db.commit()

    with pytest.raises(NotFoundError):
        cart_service.add_product(GUEST, keyboard.id, 1)


def test_cart_uses_current_selling_price(db, cart_service, make_product):
    keyboard = make_product("Keyboard", price="100.00")
    cart_service.add_product(GUEST, keyboard.id, 2)

    keyboard.price = Decimal("80.00")
    db.commit()

    cart = cart_service.get_cart(GUEST)
    assert cart["items"][0]["price"] == Decimal("80.00")
    assert cart["total"] == Decimal("160.00")


def test_update_quantity_and_remove_with_zero(cart_service, make_product):
    keyboard, mouse = make_product("Keyboard"), make_product("Mouse")
    cart_service.add_product(GUEST, keyboard.id, 1)
    cart_service.add_product(GUEST, mouse.id, 1)

    cart = cart_service.update_quantity(GUEST, keyboard.id, 5)
    assert {i["product_id"]: i["quantity"] for i in cart["items"]} == {keyboard.id: 5, mouse.id: 1}

    cart = cart_service.update_quantity(GUEST, mouse.id, 0)
    assert [i["product_id"] for i in cart["items"]] == [keyboard.id]


def test_remove_missing_line(cart_service):
    with pytest.raises(NotFoundError):
        cart_service.remove_product(GUEST, 1)


def test_each_command_bumps_version(db, cart_service, make_product):
    keyboard = make_product("Keyboard")
    cart_service.add_product(GUEST, keyboard.id, 1)
    cart_service.add_product(GUEST, keyboard.id, 1)

    cart = CartRepo(db).get_cart_by_owner(GUEST)
    assert cart.version == 3


def test_only_guest_carts_expire(cart_service, make_user, make_product):
    user = make_user()
    keyboard = make_product("Keyboard")

    guest_cart = cart_service.add_product(GUEST, keyboard.id, 1)
    user_cart = cart_service.add_product(UserOwner(user.id), keyboard.id, 1)

    assert guest_cart["expires_at"] is not None
    assert user_cart["expires_at"] is None


def test_purge_expired_guest_carts(db, cart_service, make_user, make_product):
    user = make_user()
    keyboard = make_product("Keyboard")
    stale = SessionOwner("guest-session-stale")
    cart_service.add_product(stale, keyboard.id, 1)
    cart_service.add_product(GUEST, keyboard.id, 1)
    cart_service.add_product(UserOwner(user.id), keyboard.id, 1)

    repo = CartRepo(db)
    repo.get_cart_by_owner(stale).expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()

    assert cart_service.purge_expired_guest_carts() == 1

    assert repo.get_cart_by_owner(stale) is None
    assert repo.get_cart_by_owner(GUEST) is not None
    assert repo.get_cart_by_owner(UserOwner(user.id)) is not None


def test_purge_task_runs_in_its_own_session(engine, monkeypatch):
    from sqlalchemy.orm import sessionmaker

    from app.tasks import expire

    monkeypatch.setattr(expire, "SessionLocal", sessionmaker(bind=engine))

    assert expire.purge_guest_carts_task() == {"purged": 0}
