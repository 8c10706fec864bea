"""
Infinite Notepad Backend — Auth Service
=========================================

What:  Password hashing, bearer token issue/verification, sign-up, sign-in
       and email confirmation.
How:   bcrypt for password hashes; HS256 JWTs (python-jose) for both access
       tokens (`type=access`) and email confirmation tokens (`type=confirm`).
Who:   Auth routes, and `get_current_user` for every protected route.

Token lifecycle:
    sign-up ──▶ confirmation token (logged for delivery)
            └─▶ access token, unless email confirmation is required
    sign-in ──▶ access token (401 while the email is unconfirmed)
    confirm ──▶ email_confirmed_at set
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.config import settings
from notepad.database import utc_now
from notepad.exceptions import AuthenticationError, ValidationError
from notepad.models.user import User
from notepad.repositories.user import UserRepository

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
CONFIRM_TOKEN = "confirm"

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
        hashed_password.encode("utf-8"),
    )


def _encode(claims: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = dict(claims)
    to_encode.update({"exp": utc_now() + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a bearer token for `user`.

    Args:
        user: Token subject
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT
    """
    return _encode(
        {"sub": str(user.id), "email": user.email},
        ACCESS_TOKEN,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_confirmation_token(user: User) -> str:
    return _encode(
        {"sub": str(user.id), "email": user.email},
        CONFIRM_TOKEN,
        timedelta(hours=settings.confirmation_token_expire_hours),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """
    Decode and validate a JWT.

    Raises:
        AuthenticationError: invalid signature, expired, or wrong token type
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning("Token decode failed: %s", str(e))
        raise AuthenticationError("Invalid or expired token")
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return payload


class AuthService:
    """Account operations. Stateless; every call receives the session."""

    async def sign_up(self, db: AsyncSession, email: str, password: str) -> Tuple[User, Optional[str]]:
        """
        Create an account.

        Returns:
            (user, access token), where the token is None when the account
            must confirm its email before signing in.

        Raises:
            ValidationError: the email is already registered
        """
        users = UserRepository(db)
        if await users.get_by_email(email) is not None:
            raise ValidationError(
                message="An account with this email already exists",
                field="email",
            )

        confirmed_at = None if settings.require_email_confirmation else utc_now()
        try:
            user = await users.create(
                email=email,
                password_hash=hash_password(password),
                created_at=utc_now(),
                email_confirmed_at=confirmed_at,
            )
        except IntegrityError:
            # A concurrent sign-up won the unique email constraint
            raise ValidationError(
                message="An account with this email already exists",
                field="email",
            )

        confirmation = create_confirmation_token(user)
        # No mail transport: the link is logged for delivery
        logger.info(
            "Sign-up for %s; confirmation link: /api/auth/confirm?token=%s",
            user.email,
            confirmation,
        )

        if not user.is_confirmed:
            return user, None
        return user, create_access_token(user)

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            AuthenticationError: unknown email, wrong password, or unconfirmed email
        """
        user = await UserRepository(db).get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_confirmed:
            raise AuthenticationError("Email not confirmed")
        logger.info("User signed in: %s", user.id)
        return user, create_access_token(user)

    async def authenticate(self, db: AsyncSession, token: str) -> User:
        """Exchange a bearer token for its user."""
        payload = decode_token(token, ACCESS_TOKEN)
        user = await UserRepository(db).get_by_id(payload["sub"])
        if user is None:
            raise AuthenticationError("Invalid or expired token")
        return user

    async def confirm_email(self, db: AsyncSession, token: str) -> User:
        payload = decode_token(token, CONFIRM_TOKEN)
        user = await UserRepository(db).get_by_id(payload["sub"])
        if user is None:
            raise AuthenticationError("Invalid or expired token")
        if user.email_confirmed_at is None:
            user.email_confirmed_at = utc_now()
            await db.flush()
            logger.info("Email confirmed for user %s", user.id)
        return user


auth_service = AuthService()
