import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.errors import ConflictError, StorageError
from app.domain.owner import SessionOwner, UserOwner
from app.repos.cart_repo import CartRepo

TOKEN = "guest-session-0001"


def quantities(db, owner):
    db.expire_all()
    cart = CartRepo(db).get_cart_by_owner(owner)
    if cart is None:
        return None
    return {i.product_id: i.quantity for i in CartRepo(db).get_cart_items(cart.id)}


def snapshot(db, owner):
    db.expire_all()
    cart = CartRepo(db).get_cart_by_owner(owner)
    items = CartRepo(db).get_cart_items(cart.id)
    return (
        cart.id,
        cart.version,
        cart.created_at,
        [(i.id, i.product_id, i.quantity) for i in items],
    )


def test_shared_product_quantities_are_summed(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard, mouse = make_product("Keyboard"), make_product("Mouse")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 2, mouse.id: 1})
    fill_cart(UserOwner(user.id), {keyboard.id: 3})

    result = cart_service.reconcile(TOKEN, user.id)

    assert quantities(db, UserOwner(user.id)) == {keyboard.id: 5, mouse.id: 1}
    assert quantities(db, SessionOwner(TOKEN)) is None
    assert {i["product_id"]: i["quantity"] for i in result["items"]} == {keyboard.id: 5, mouse.id: 1}


def test_merge_leaves_single_line_per_product(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 1})
    fill_cart(UserOwner(user.id), {keyboard.id: 1})

    cart_service.reconcile(TOKEN, user.id)

    rows = db.execute(select(CartItemModel).where(CartItemModel.product_id == keyboard.id)).scalars().all()
    assert len(rows) == 1
    assert rows[0].quantity == 2


def test_guest_rows_retagged_when_user_has_no_cart(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard = make_product("Keyboard")
    guest = fill_cart(SessionOwner(TOKEN), {keyboard.id: 4})
    guest_id = guest.id

    result = cart_service.reconcile(TOKEN, user.id)

    assert result["owner_kind"] == "USER"
    assert quantities(db, UserOwner(user.id)) == {keyboard.id: 4}
    assert db.get(CartModel, guest_id) is None
    assert db.execute(select(CartModel)).scalars().all()[0].owner_ref == str(user.id)


def test_no_guest_cart_leaves_user_cart_unchanged(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(UserOwner(user.id), {keyboard.id: 2})
    before = snapshot(db, UserOwner(user.id))

    cart_service.reconcile(TOKEN, user.id)

    assert snapshot(db, UserOwner(user.id)) == before


def test_no_guest_cart_ends_transaction(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(UserOwner(user.id), {keyboard.id: 2})
    db.expire_all()

    result = cart_service.reconcile(TOKEN, user.id)

    assert not db.in_transaction()
    assert [(i["product_id"], i["quantity"]) for i in result["items"]] == [(keyboard.id, 2)]


def test_no_carts_at_all_creates_empty_user_cart(db, cart_service, make_user):
    user = make_user()

    result = cart_service.reconcile(None, user.id)

    assert result["items"] == []
    assert quantities(db, UserOwner(user.id)) == {}


def test_reconcile_twice_is_noop(db, cart_service, make_user, make_product, fill_cart):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 2})

    cart_service.reconcile(TOKEN, user.id)
    after_first = snapshot(db, UserOwner(user.id))
    cart_service.reconcile(TOKEN, user.id)

    assert snapshot(db, UserOwner(user.id)) == after_first


def test_running_reconciliation_for_same_user_conflicts(
    db, cart_service, redis_client, make_user, make_product, fill_cart
):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 2})
    redis_client.set(f"cart:reconcile:user:{user.id}", "someone-else")

    with pytest.raises(ConflictError):
        cart_service.reconcile(TOKEN, user.id)

    assert quantities(db, SessionOwner(TOKEN)) == {keyboard.id: 2}
    assert redis_client.get(f"cart:reconcile:user:{user.id}") == "someone-else"


def test_lock_is_released_after_reconcile(cart_service, redis_client, make_user):
    user = make_user()

    cart_service.reconcile(TOKEN, user.id)

    assert redis_client.get(f"cart:reconcile:user:{user.id}") is None


def test_storage_failure_leaves_pre_merge_state(
    db, cart_service, redis_client, make_user, make_product, fill_cart, monkeypatch
):
    user = make_user()
    keyboard, mouse = make_product("Keyboard"), make_product("Mouse")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 2, mouse.id: 1})
    fill_cart(UserOwner(user.id), {keyboard.id: 3})

    def boom(cart):
        raise OperationalError("DELETE FROM carts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(cart_service.repo, "delete_cart", boom)

    with pytest.raises(StorageError):
        cart_service.reconcile(TOKEN, user.id)

    assert quantities(db, SessionOwner(TOKEN)) == {keyboard.id: 2, mouse.id: 1}
    assert quantities(db, UserOwner(user.id)) == {keyboard.id: 3}
    assert redis_client.get(f"cart:reconcile:user:{user.id}") is None


def test_lost_version_check_is_a_conflict(db, cart_service, make_user, make_product, fill_cart, monkeypatch):
    user = make_user()
    keyboard = make_product("Keyboard")
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 2})
    fill_cart(UserOwner(user.id), {keyboard.id: 1})

    monkeypatch.setattr(cart_service.repo, "update_cart_version", lambda **kwargs: 0)

    with pytest.raises(ConflictError):
        cart_service.reconcile(TOKEN, user.id)

    assert quantities(db, SessionOwner(TOKEN)) == {keyboard.id: 2}
    assert quantities(db, UserOwner(user.id)) == {keyboard.id: 1}


def test_other_user_cart_is_not_touched(db, cart_service, make_user, make_product, fill_cart):
    alice, bob = make_user("Alice"), make_user("Bob")
    keyboard = make_product("Keyboard")
    fill_cart(UserOwner(bob.id), {keyboard.id: 7})
    fill_cart(SessionOwner(TOKEN), {keyboard.id: 1})

    cart_service.reconcile(TOKEN, alice.id)

    assert quantities(db, UserOwner(bob.id)) == {keyboard.id: 7}
    assert quantities(db, UserOwner(alice.id)) == {keyboard.id: 1}
