from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from account_api.core.deps import get_current_subject, get_user_manager
from account_api.schemas import (
    ProfileResponse,
    RegisterRequest,
    RestoreUserResponse,
    UpdateUserResponse,
    UserDetail,
    UserListResponse,
    UserSummary,
    UserUpdateRequest,
)
from account_api.services.users import UserAccountManager

router = APIRouter(prefix="/user", tags=["users"])


@router.post("/register", response_model=UserSummary, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, manager: UserAccountManager = Depends(get_user_manager)):
    user = await manager.register(payload.name, payload.email, payload.password)
    return UserSummary.model_validate(user)


@router.get("/", response_model=UserListResponse, dependencies=[Depends(get_current_subject)])
async def list_users(
    page: int = Query(1),
    per_page: int = Query(10, alias="perPage"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    search: Optional[str] = Query(None),
    manager: UserAccountManager = Depends(get_user_manager),
):
    result = await manager.list_users(
        page=page, per_page=per_page, sort_by=sort_by, sort_order=sort_order, search=search
    )
    return UserListResponse.model_validate(result)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    subject: str = Depends(get_current_subject),
    manager: UserAccountManager = Depends(get_user_manager),
):
    return ProfileResponse.model_validate(await manager.get_profile(subject))


@router.patch("/{user_id}", response_model=UpdateUserResponse, dependencies=[Depends(get_current_subject)])
async def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    manager: UserAccountManager = Depends(get_user_manager),
):
    user = await manager.update_user(user_id, name=payload.name, email=payload.email)
    return UpdateUserResponse(message="User updated", user=UserDetail.model_validate(user))


@router.patch(
    "/{user_id}/restore", response_model=RestoreUserResponse, dependencies=[Depends(get_current_subject)]
)
async def restore_user(user_id: str, manager: UserAccountManager = Depends(get_user_manager)):
    restored_id = await manager.restore_user(user_id)
    return RestoreUserResponse(message="User restored", id=restored_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_current_subject)])
async def delete_user(user_id: str, manager: UserAccountManager = Depends(get_user_manager)):
    await manager.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
