# routers/auth.py — Registration, login and current-user endpoints
import logging

from fastapi import APIRouter, Depends, HTTPException

from auth import AuthService, UserRegister, UserLogin, TokenResponse, get_current_user, CurrentUser
from schemas import UserCreate
from storage import Storage, DuplicateUserError, get_storage

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
logger = logging.getLogger("storefront.auth")


@router.post("/register", status_code=201)
async def register(
    user_data: UserRegister,
    storage: Storage = Depends(get_storage),
):
    """Register a new user account"""
    if await storage.get_user_by_username(user_data.username):
        raise HTTPException(status_code=400, detail="Username already taken")
    if await storage.get_user_by_email(user_data.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        user = await storage.create_user(UserCreate(**user_data.model_dump()))
    except DuplicateUserError as e:
        # Lost a race with a concurrent registration
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Registered user {user.id} ({user.username})")
    return user.public()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    storage: Storage = Depends(get_storage),
):
    """Authenticate and receive an access token"""
    if not credentials.username or not credentials.password:
        raise HTTPException(status_code=400, detail="Username and password required")

    user = await AuthService.authenticate_user(credentials.username, credentials.password, storage)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return AuthService.token_for(user)


@router.get("/me")
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    user = await storage.get_user(current_user.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.public()
