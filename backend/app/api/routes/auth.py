"""
Authentication endpoints: register, login and user/role management.
"""

from fastapi import APIRouter, Depends, status

from app.core.security import Principal, get_current_principal, require_admin
from app.db.session import Database, get_db
from app.schemas.user import UserCreate, UserResponse, UserLogin, RoleUpdate, Token
from app.services.auth_service import (
    register_user,
    authenticate_user,
    get_user,
    list_users,
    update_user_role,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Database = Depends(get_db)):
    """Register a new user account."""
    return await register_user(db, user_data)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: Database = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token = await authenticate_user(db, login_data)
    return Token(access_token=token)


@router.get("/users/me", response_model=UserResponse)
async def read_current_user(
    principal: Principal = Depends(get_current_principal),
    db: Database = Depends(get_db),
):
    return await get_user(db, principal.user_id)


@router.get("/users", response_model=list[UserResponse])
async def read_users(
    _: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """List all users. Admin only."""
    return await list_users(db)


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    role_data: RoleUpdate,
    _: Principal = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Promote or demote a user. Admin only."""
    return await update_user_role(db, user_id, role_data.role)
