import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aula.config import settings
from aula.crud.teacher import create_teacher_with_user, get_fullname
from aula.database import get_db
from aula.models.all_models import PasswordResetToken, User
from aula.schemas.auth import (
    ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, MessageResponse, ProfileResponse,
    ProfileUpdate, RefreshTokenRequest, RegisterRequest, ResetPasswordRequest, TokenResponse, UserInfo,
)
from aula.utils.auth import (
    authenticate_user, create_access_token, create_refresh_token, get_current_user, get_password_hash,
    get_user_from_payload, hash_reset_token, new_reset_token, verify_password, verify_token,
)
from aula.utils.dates import now_naive

logger = logging.getLogger(__name__)

# Router
router = APIRouter(prefix="/api/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If the email is registered, a password reset link has been sent"


def issue_tokens(user: User) -> TokenResponse:
    access_token = create_access_token(
        data={"sub": str(user.id), "name": get_fullname(user.profile), "email": user.email},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    refresh_token = create_refresh_token(data={"sub": str(user.id)})
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )


def to_user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        email=user.email,
        full_name=get_fullname(user.profile),
        is_active=user.is_active,
        profile=ProfileResponse.model_validate(user.profile) if user.profile else None
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Create a teacher account and log it in
    """
    email = register_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = create_teacher_with_user(
        db,
        email=email,
        password_hash=get_password_hash(register_data.password),
        first_name=register_data.first_name,
        last_name=register_data.last_name,
        phone=register_data.phone,
        institution=register_data.institution,
        subject_specialty=register_data.subject_specialty,
    )
    return issue_tokens(user)


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login endpoint that returns JWT tokens
    """
    user = authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse, status_code=status.HTTP_200_OK)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """
    Refresh access token using refresh token
    """
    user = get_user_from_payload(db, verify_token(refresh_data.refresh_token, "refresh"))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return issue_tokens(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops them
    logger.info(f"User {current_user.email} logged out")
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=UserInfo, status_code=status.HTTP_200_OK)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current user information
    """
    return to_user_info(current_user)


@router.patch("/profile", response_model=UserInfo)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    profile = current_user.profile
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    for field, value in profile_data.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)

    db.commit()
    db.refresh(current_user)
    return to_user_info(current_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Change user password
    """
    if not verify_password(password_data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.password_hash = get_password_hash(password_data.new_password)
    db.commit()
    return MessageResponse(message="Password updated successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request_data: ForgotPasswordRequest,
    db: Session = Depends(get_db)
):
    """
    Start the reset flow. The answer is the same whether or not the email exists.
    """
    user = db.query(User).filter(User.email == request_data.email.lower()).first()
    if user and user.is_active:
        raw_token, token_hash = new_reset_token()
        db.add(PasswordResetToken(
            user_id=user.id,
            token_hash=token_hash,
            expires_at=now_naive() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        ))
        db.commit()
        # No mail transport is configured; the link goes to the log
        logger.info(f"Password reset link for {user.email}: {settings.APP_URL}/auth/reset-password?token={raw_token}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    reset_data: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    reset_token = db.query(PasswordResetToken).filter(
        PasswordResetToken.token_hash == hash_reset_token(reset_data.token)
    ).first()

    if not reset_token or reset_token.used or reset_token.expires_at < now_naive():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    user = db.query(User).filter(User.id == reset_token.user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    user.password_hash = get_password_hash(reset_data.new_password)
    reset_token.used = True
    db.commit()
    logger.info(f"Password reset completed for {user.email}")
    return MessageResponse(message="Password updated successfully")
