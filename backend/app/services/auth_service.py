"""
Authentication service handling user registration, login and role management.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import Conflict, Forbidden, NotFound, Unauthorized
from app.core.logging import get_logger
from app.core.security import hash_password, verify_password, create_access_token
from app.db.session import Database
from app.models.user import User
from app.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


async def register_user(db: Database, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises Conflict if email or username already exists.
    """
    try:
        async with db.transaction() as tx:
            # Check for existing email
            if await tx.scalar(select(User).where(User.email == user_data.email)):
                logger.warning("registration_failed", reason="email_exists", email=user_data.email)
                raise Conflict(code="email-taken", message="Email already registered")

            # Check for existing username
            if await tx.scalar(select(User).where(User.username == user_data.username)):
                logger.warning("registration_failed", reason="username_exists", username=user_data.username)
                raise Conflict(code="username-taken", message="Username already taken")

            user = User(
                email=user_data.email,
                username=user_data.username,
                hashed_password=hash_password(user_data.password),
            )
            tx.add(user)
            await tx.flush()
            await tx.refresh(user)
    except IntegrityError as exc:
        # Concurrent registration with the same email/username
        raise Conflict(code="user-exists", message="Email or username already registered") from exc

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: Database, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises Unauthorized if credentials are invalid.
    """
    async with db.transaction() as tx:
        user = await tx.scalar(select(User).where(User.email == login_data.email))

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise Unauthorized(code="invalid-credentials", message="Invalid email or password")

    if not user.is_active:
        raise Forbidden(code="account-deactivated", message="Account is deactivated")

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return token


async def get_user(db: Database, user_id: int) -> User:
    async with db.transaction() as tx:
        user = await tx.get(User, user_id)
    if user is None:
        raise NotFound(code="user", message="User not found")
    return user


async def list_users(db: Database) -> list[User]:
    async with db.transaction() as tx:
        return await tx.scalars(select(User).order_by(User.id))


async def update_user_role(db: Database, user_id: int, role: str) -> User:
    async with db.transaction() as tx:
        user = await tx.get(User, user_id)
        if user is None:
            raise NotFound(code="user", message="User not found")
        user.role = role
        await tx.flush()
        await tx.refresh(user)

    logger.info("user_role_updated", user_id=user_id, role=role)
    return user
