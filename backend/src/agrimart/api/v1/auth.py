"""Authentication API endpoints."""

from fastapi import APIRouter, HTTPException, status

from agrimart.api.deps import CurrentUser, DbSession
from agrimart.core.config import settings
from agrimart.core.security import create_access_token
from agrimart.schemas.user import TokenResponse, UserLogin, UserRegister, UserResponse, UserUpdate
from agrimart.services.user_service import UserService

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: DbSession):
    """Register a new buyer or seller.

    Raises:
        409: Email already registered
    """
    user_service = UserService(db)
    return await user_service.create_user(user_data)


@router.post("/login", response_model=TokenResponse)
async def login(user_data: UserLogin, db: DbSession):
    """Login and get an access token.

    Raises:
        401: Invalid credentials
    """
    user_service = UserService(db)
    user = await user_service.authenticate(user_data.email, user_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": str(user.user_id), "role": user.role})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Get current user information."""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(data: UserUpdate, db: DbSession, current_user: CurrentUser):
    """Update the current user's name and phone number."""
    user_service = UserService(db)
    return await user_service.update_profile(current_user, data)
