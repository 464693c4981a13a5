from functools import partial

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_app_settings
from ..database import get_db
from ..models.user import User
from ..schemas.user import (
    AccountResponse,
    ForgotPasswordRequest,
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    ResetByEmailRequest,
    ResetPasswordRequest,
    UserCreate,
    UserLogin,
)
from ..services.auth import create_access_token, get_current_user
from ..services.credentials import CredentialStore, ResetNotifier
from ..services.email import send_password_reset_email

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def get_reset_notifier(settings: Settings = Depends(get_app_settings)) -> ResetNotifier:
    """Delivery channel for reset tokens (email)."""
    return partial(send_password_reset_email, settings)


def get_credential_store(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    notifier: ResetNotifier = Depends(get_reset_notifier),
) -> CredentialStore:
    async def deliver_after_response(email: str, token: str):
        # Delivery runs after the response is sent
        background_tasks.add_task(notifier, email, token)

    return CredentialStore(db, settings, deliver_after_response)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, store: CredentialStore = Depends(get_credential_store)):
    """Register a new account"""
    user_id = await store.register(user_data.email, user_data.password)
    return RegisterResponse(id=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: UserLogin,
    store: CredentialStore = Depends(get_credential_store),
    settings: Settings = Depends(get_app_settings),
):
    """Login with email and password, returns a bearer token"""
    user = await store.authenticate(credentials.email, credentials.password)
    access_token = create_access_token(data={"sub": str(user.id)}, settings=settings)
    return LoginResponse(token=access_token, user=AccountResponse.model_validate(user))


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, store: CredentialStore = Depends(get_credential_store)):
    """Send password reset email"""
    await store.request_reset(request.email)
    return MessageResponse(message="If the email exists, a reset link has been sent.")


@router.put("/reset-by-email", response_model=MessageResponse)
async def reset_by_email(request: ResetByEmailRequest, store: CredentialStore = Depends(get_credential_store)):
    """Complete a pending reset for the given email"""
    await store.reset_by_email(request.email, request.new_password, request.confirm_password)
    return MessageResponse(message="Password reset successful. You can now login.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, store: CredentialStore = Depends(get_credential_store)):
    """Reset password with token"""
    await store.reset_by_token(request.token, request.new_password, request.confirm_password)
    return MessageResponse(message="Password reset successful. You can now login.")


@router.get("/me", response_model=AccountResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current account"""
    return current_user
