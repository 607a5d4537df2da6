# app/domain/owner.py
from dataclasses import dataclass
from typing import Union

SESSION = "SESSION"
USER = "USER"


@dataclass(frozen=True)
class SessionOwner:
    token: str

    @property
    def kind(self) -> str:
        return SESSION

    @property
    def ref(self) -> str:
        return self.token


@dataclass(frozen=True)
class UserOwner:
    user_id: int

    @property
    def kind(self) -> str:
        return USER

    @property
    def ref(self) -> str:
        return str(self.user_id)


CartOwner = Union[SessionOwner, UserOwner]

