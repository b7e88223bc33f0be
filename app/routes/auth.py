from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import (
    UserRegister, UserLogin, LogoutRequest, UserProfileUpdate, ChangePasswordRequest,
    UserResponse, AuthResponse, MessageResponse
)
from app.services.auth import AuthService

router = APIRouter()

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Register a new customer account"""
    user, token = AuthService.register_user(db, user_data)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))

@router.post("/login", response_model=AuthResponse)
def login(login_data: UserLogin, db: Session = Depends(get_db)):
    user, token = AuthService.login(db, login_data)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))

@router.post("/logout", response_model=MessageResponse)
def logout(
    logout_data: LogoutRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AuthService.logout(db, current_user, logout_data.fcm_token)
    return MessageResponse(message="Logged out successfully")

@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user

@router.put("/profile", response_model=UserResponse)
def update_profile(
    profile_data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AuthService.update_profile(db, current_user, profile_data)

@router.post("/change-password", response_model=MessageResponse)
def change_password(
    password_data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AuthService.change_password(db, current_user, password_data)
    return MessageResponse(message="Password changed successfully")
