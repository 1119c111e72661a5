from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    UserResponse,
    LoginResponse,
    RegisterResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)
from app.services.auth_service import AuthService
from app.services.password_reset_service import PasswordResetService
from app.utils.dependencies import get_current_user
from app.utils.security import ACCESS_TOKEN_COOKIE, COOKIE_SECURE
from app.models.user import User

# Define router
router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, session: dict) -> None:
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=session["access_token"],
        max_age=session["expires_in"],
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


# Register a new user
@router.post("/register", response_model=RegisterResponse)
def register(user_data: UserRegister, response: Response, db: Session = Depends(get_db)):
    """Register a new user and start a session"""
    result = AuthService.register_user(db, user_data)
    _set_session_cookie(response, result["session"])
    return result


# Login endpoint
@router.post("/login", response_model=LoginResponse)
def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Login with email and password"""
    result = AuthService.login_user(db, credentials)
    _set_session_cookie(response, result["session"])
    return result


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout():
    """Drop the session cookie. Bearer tokens simply expire."""
    response = Response(status_code=status.HTTP_200_OK)
    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    return response


# Get current authenticated user
@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return current_user


@router.post("/forgot-password", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Request a password reset link."""
    client_ip = request.client.host if request.client else None
    PasswordResetService.request_reset(db, payload.email, client_ip)
    return {"message": "If an account exists for that email, we sent reset instructions."}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    """Complete password reset with a valid token."""
    PasswordResetService.reset_password(db, payload.token, payload.new_password)
    return {"message": "Password reset successful. You can now log in with your new password."}
