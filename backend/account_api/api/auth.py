from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from account_api.core.config import settings
from account_api.core.deps import get_auth_manager
from account_api.core.errors import TokenExpired, error_response
from account_api.schemas import AccessTokenResponse, LoginRequest
from account_api.services.auth import AuthSessionManager, IssuedSession, RequestMetadata

router = APIRouter(prefix="/auth", tags=["auth"])


def _request_metadata(request: Request) -> RequestMetadata:
    return RequestMetadata(
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )


def set_refresh_cookie(response: Response, issued: IssuedSession) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=issued.refresh_token,
        max_age=settings.refresh_token_ttl_seconds,
        path=settings.refresh_cookie_path,
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.refresh_cookie_path,
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


@router.post("/login", response_model=AccessTokenResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    manager: AuthSessionManager = Depends(get_auth_manager),
):
    issued = await manager.login(payload.email, payload.password, _request_metadata(request))
    set_refresh_cookie(response, issued)
    return AccessTokenResponse(access_token=issued.access_token)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    response: Response,
    manager: AuthSessionManager = Depends(get_auth_manager),
):
    presented = request.cookies.get(settings.refresh_cookie_name)
    try:
        issued = await manager.refresh(presented, _request_metadata(request))
    except TokenExpired as exc:
        expired: JSONResponse = error_response(exc)
        clear_refresh_cookie(expired)
        return expired
    set_refresh_cookie(response, issued)
    return AccessTokenResponse(access_token=issued.access_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request, manager: AuthSessionManager = Depends(get_auth_manager)):
    await manager.logout(request.cookies.get(settings.refresh_cookie_name))
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_refresh_cookie(response)
    return response
