from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional

from . import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class AccountResponse(CamelModel):
    id: int
    email: EmailStr
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegisterResponse(CamelModel):
    id: int
    message: str = "Registration successful"


class LoginResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: AccountResponse


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetByEmailRequest(CamelModel):
    email: EmailStr
    new_password: str = Field(min_length=6, max_length=72)
    confirm_password: str


class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str = Field(min_length=6, max_length=72)
    confirm_password: str


class MessageResponse(CamelModel):
    message: str
    success: bool = True
