"""FastAPI routes that expose the cookie-session authentication flow."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from .deps import get_auth_service, require_session
from .schemas import ErrorResponse, UserResponse
from .service import AuthService
from .store import Session

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get(
    "/login",
    status_code=status.HTTP_302_FOUND,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def login(
    request: Request,
    return_url: Optional[str] = Query(default=None, alias="returnUrl"),
    auth_service: AuthService = Depends(get_auth_service),
) -> Response:
    return await auth_service.begin_login(request, return_url)


@router.get("/callback", status_code=status.HTTP_302_FOUND)
async def callback(request: Request, auth_service: AuthService = Depends(get_auth_service)) -> Response:
    return await auth_service.complete_login(request)


@router.get(
    "/user",
    response_model=UserResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
def current_user(
    response: Response,
    session: Session = Depends(require_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    auth_service.renew_session_cookie(response, session)
    return UserResponse.from_claim(session.claim)


@router.post("/logout", status_code=status.HTTP_303_SEE_OTHER)
def logout(request: Request, auth_service: AuthService = Depends(get_auth_service)) -> Response:
    return auth_service.logout(request)
