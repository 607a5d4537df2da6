from fastapi import APIRouter, Depends

from app.api.deps import get_cart_service, get_user_service
from app.api.errors import http_error
from app.api.identity import current_user_id, session_token
from app.domain.errors import ShopError
from app.domain.schemas import UserCreate, UserRead, AddressCreate, AddressRead
from app.services.cart_service import CartService
from app.services.user_service import UserService
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _check_own_account(user_id: int, caller_id: int) -> None:
    if user_id != caller_id:
        raise PermissionError("No access to this account")


@router.post("", response_model=UserRead, status_code=201)
def register_user(
    payload: UserCreate,
    token: str | None = Depends(session_token),
    service: UserService = Depends(get_user_service),
    carts: CartService = Depends(get_cart_service),
):
    try:
        user = service.create_user(payload)
    except ShopError as e:
        raise http_error(e)

    if token:
        #guest cart follows the new account, registration itself already succeeded
        try:
            carts.reconcile(token, user.id)
        except ShopError as e:
            logger.warning(f"Cart reconciliation after registering user {user.id} failed: {e}")
    return user


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    caller_id: int = Depends(current_user_id),
    service: UserService = Depends(get_user_service),
):
    try:
        _check_own_account(user_id, caller_id)
        return service.get_user(user_id)
    except (ShopError, PermissionError) as e:
        raise http_error(e)


@router.post("/{user_id}/addresses", response_model=AddressRead, status_code=201)
def add_address(
    user_id: int,
    payload: AddressCreate,
    caller_id: int = Depends(current_user_id),
    service: UserService = Depends(get_user_service),
):
    try:
        _check_own_account(user_id, caller_id)
        return service.add_address(user_id, payload)
    except (ShopError, PermissionError) as e:
        raise http_error(e)
