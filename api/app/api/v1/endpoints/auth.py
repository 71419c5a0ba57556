from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select
from app.core.config import settings
from app.core.database import get_session
from app.core.security import create_access_token, get_current_user
from app.models.models import User
from app.schemas.auth import LoginRequest, RegisterRequest, AuthResponse, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        lang_native=user.lang_native,
        lang_learning=user.lang_learning,
        created_at=user.created_at.isoformat(),
        full_name=user.full_name,
    )


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_duration_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    response: Response,
    session: Session = Depends(get_session)
):
    """Login with username/email and password."""
    # Try to find user by username or email
    statement = select(User).where(
        (User.username == login_data.username) | (User.email == login_data.username)
    )
    user = session.exec(statement).first()

    if not user or not user.verify_password(login_data.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username/email or password"
        )

    token = create_access_token(user.id)
    _set_session_cookie(response, token)

    return AuthResponse(
        user=_user_response(user),
        access_token=token,
        message="Login successful"
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    response: Response,
    session: Session = Depends(get_session)
):
    """Register a new user and start a session."""
    # Check if username already exists
    existing_user = session.exec(select(User).where(User.username == register_data.username)).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )

    # Check if email already exists
    existing_email = session.exec(select(User).where(User.email == register_data.email)).first()
    if existing_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exists"
        )

    new_user = User(
        username=register_data.username,
        email=register_data.email,
        password=User.hash_password(register_data.password),
        lang_native=register_data.native_language,
        lang_learning=register_data.learning_language,
        full_name=register_data.full_name,
    )

    session.add(new_user)
    session.commit()
    session.refresh(new_user)

    token = create_access_token(new_user.id)
    _set_session_cookie(response, token)

    return AuthResponse(
        user=_user_response(new_user),
        access_token=token,
        message="Registration successful"
    )


@router.post("/signout")
async def signout(response: Response):
    """Clear the session cookie. Bearer tokens simply expire."""
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True, "message": "Signed out"}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return _user_response(user)
