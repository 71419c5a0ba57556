from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    """Login request schema."""
    username: str = Field(..., description="Username or email")
    password: str = Field(..., min_length=1, description="Password")


class RegisterRequest(BaseModel):
    """Registration request schema."""
    username: str = Field(..., min_length=3, max_length=50, description="Username")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password (minimum 6 characters)")
    native_language: str = Field("en", max_length=2, description="Native language code (e.g., 'en')")
    learning_language: str = Field("es", max_length=2, description="Learning language code (e.g., 'es')")
    full_name: Optional[str] = Field(None, max_length=200, description="User's full name")


class UserResponse(BaseModel):
    """User response schema (without password)."""
    id: int
    username: str
    email: str
    lang_native: str
    lang_learning: str
    created_at: str
    full_name: Optional[str] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Authentication response schema."""
    user: UserResponse
    access_token: Optional[str] = None
    token_type: str = "bearer"
    message: str
