from sqlalchemy.exc import IntegrityError

from sqlalchemy.orm import Session
from app.data.models.user import UserModel, AddressModel
from app.domain.errors import ConflictError, NotFoundError
from app.repos.user_repo import UserRepo
from app.domain.schemas import UserCreate, UserRead, AddressCreate, AddressRead


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        if self.repo.get_user_by_email(payload.email):
            raise ConflictError(f"Email {payload.email} is already registered")

        try:
            created = self.repo.create_user(UserModel(name=payload.name, email=payload.email))
        except IntegrityError as e:
            self.repo.db.rollback()
            raise ConflictError(f"Email {payload.email} is already registered") from e
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)

    def add_address(self, user_id: int, payload: AddressCreate) -> AddressRead:
        if not self.repo.get_user(user_id):
            raise NotFoundError("User not found")
        address = self.repo.add_address(AddressModel(user_id=user_id, **payload.model_dump()))
        return AddressRead.model_validate(address)
