"""
Infinite Notepad Backend — Auth Route Handlers
================================================

What:  Sign-up, sign-in, token verification and email confirmation.
How:   Delegates to AuthService; responses carry the snake_case user object
       the clients decode.

Sign-up has two outcomes:
    confirmation not required → 201 { message, user, token }
    confirmation required     → 201 { message, user, token: null,
                                      requiresConfirmation: true }
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.database import get_db_session
from notepad.dependencies import get_current_user
from notepad.models.user import User
from notepad.schemas.auth import (
    AuthResponse,
    ConfirmResponse,
    LoginRequest,
    SignupRequest,
    SignupResponse,
    UserResponse,
    VerifyResponse,
)
from notepad.schemas.common import ErrorResponse
from notepad.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input or email taken", "model": ErrorResponse}},
    summary="Create an account",
)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SignupResponse:
    user, token = await auth_service.sign_up(db, body.email, body.password)
    if token is None:
        return SignupResponse(
            message="Account created. Check your email to confirm your account.",
            user=UserResponse.model_validate(user),
            requires_confirmation=True,
        )
    return SignupResponse(
        message="Account created successfully",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Bad credentials or unconfirmed email", "model": ErrorResponse}},
    summary="Sign in",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.sign_in(db, body.email, body.password)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get(
    "/verify",
    response_model=VerifyResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Check a bearer token",
)
async def verify(user: User = Depends(get_current_user)) -> VerifyResponse:
    return VerifyResponse(user=UserResponse.model_validate(user))


@router.get(
    "/confirm",
    response_model=ConfirmResponse,
    responses={401: {"description": "Invalid or expired confirmation token", "model": ErrorResponse}},
    summary="Confirm an email address",
)
async def confirm(
    token: str = Query(..., description="Confirmation token from the sign-up email"),
    db: AsyncSession = Depends(get_db_session),
) -> ConfirmResponse:
    user = await auth_service.confirm_email(db, token)
    return ConfirmResponse(message="Email confirmed", user=UserResponse.model_validate(user))
