import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from account_api.core.errors import EmailAlreadyExists, NotFound, ValidationError
from account_api.core.security import hash_password
from account_api.models import User
from account_api.repositories import UserQuery, UserRepository
from account_api.repositories.users import SORT_ORDERS, SORTABLE_COLUMNS, is_unique_violation

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


@dataclass(frozen=True)
class PageMeta:
    page: int
    per_page: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, per_page: int, total: int) -> "PageMeta":
        total_pages = math.ceil(total / per_page) if total else 0
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


@dataclass(frozen=True)
class UserPage:
    data: List[User]
    meta: PageMeta


def _store_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


class UserAccountManager:
    def __init__(self, users: UserRepository):
        self.users = users

    async def register(self, name: str, email: str, password: str) -> User:
        password_hash = await run_in_threadpool(hash_password, password)
        try:
            user = await self.users.create(name=name, email=email, password_hash=password_hash)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise EmailAlreadyExists() from exc
            raise ValidationError(_store_message(exc)) from exc
        except SQLAlchemyError as exc:
            raise ValidationError(_store_message(exc)) from exc
        logger.info("User %s registered", user.id)
        return user

    async def get_profile(self, subject_id: str) -> User:
        user = await self.users.get_by_id(subject_id)
        if user is None:
            raise NotFound("User")
        return user

    async def list_users(
        self,
        page: int = 1,
        per_page: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        search: Optional[str] = None,
    ) -> UserPage:
        if sort_by not in SORTABLE_COLUMNS:
            allowed = ", ".join(SORTABLE_COLUMNS)
            raise ValidationError(f"Unsupported sort field. Allowed: {allowed}")
        if sort_order not in SORT_ORDERS:
            raise ValidationError("sortOrder must be 'asc' or 'desc'")
        if page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise ValidationError(f"perPage must be between 1 and {MAX_PER_PAGE}")

        query = UserQuery(
            skip=(page - 1) * per_page,
            take=per_page,
            sort_by=sort_by,
            sort_order=sort_order,
            search=search or "",
        )
        rows, total = await self.users.list_page(query)
        return UserPage(data=rows, meta=PageMeta.build(page, per_page, total))

    async def update_user(self, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> User:
        changes = {field: value for field, value in (("name", name), ("email", email)) if value is not None}
        if not changes:
            raise ValidationError("At least one of name or email is required")
        try:
            user = await self.users.update(user_id, changes)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise EmailAlreadyExists() from exc
            raise ValidationError(_store_message(exc)) from exc
        except SQLAlchemyError as exc:
            raise ValidationError(_store_message(exc)) from exc
        if user is None:
            raise NotFound("User")
        return user

    async def delete_user(self, user_id: str) -> None:
        if not await self.users.soft_delete(user_id):
            raise NotFound("User")
        logger.info("User %s soft-deleted", user_id)

    async def restore_user(self, user_id: str) -> str:
        if not await self.users.restore(user_id):
            raise NotFound("User")
        logger.info("User %s restored", user_id)
        return user_id
