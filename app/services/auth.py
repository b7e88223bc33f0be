import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError, ConflictError, ValidationError
from app.core.security import get_password_hash, verify_password, create_access_token
from app.models.user import User, UserPushToken
from app.schemas.user import UserRegister, UserLogin, UserProfileUpdate, ChangePasswordRequest

logger = logging.getLogger(__name__)

class AuthService:
    @staticmethod
    def register_user(db: Session, user_data: UserRegister):
        """Create a customer account and return it with an access token"""
        email = user_data.email.lower()
        if db.query(User).filter(User.email == email).first():
            raise ConflictError("User already exists with this email")

        user = User(
            email=email,
            password=get_password_hash(user_data.password),
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            phone=user_data.phone,
            preferred_language=user_data.preferred_language,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("User already exists with this email")
        db.refresh(user)

        logger.info("User registered", extra={"user_id": user.id})
        return user, create_access_token(data={"user_id": user.id})

    @staticmethod
    def login(db: Session, login_data: UserLogin):
        user = db.query(User).filter(User.email == login_data.email.lower()).first()
        if not user or not verify_password(login_data.password, user.password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        if login_data.fcm_token and login_data.fcm_token not in user.active_push_tokens:
            user.push_tokens.append(UserPushToken(token=login_data.fcm_token))

        user.last_login_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)

        return user, create_access_token(data={"user_id": user.id})

    @staticmethod
    def logout(db: Session, user: User, fcm_token: str = None):
        """Drop the device token so the user stops receiving pushes on it"""
        if fcm_token:
            db.query(UserPushToken).filter(
                UserPushToken.user_id == user.id,
                UserPushToken.token == fcm_token
            ).delete(synchronize_session=False)
            db.commit()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int):
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def update_profile(db: Session, user: User, profile_data: UserProfileUpdate):
        update_data = profile_data.model_dump(exclude_unset=True)

        address = update_data.pop("address", None)
        if address is not None:
            # partial merge; the JSON column is reassigned so the change is tracked
            merged = dict(user.address or {"country": "Belgium"})
            merged.update(address)
            user.address = merged

        for field, value in update_data.items():
            setattr(user, field, value)

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def change_password(db: Session, user: User, password_data: ChangePasswordRequest):
        if not verify_password(password_data.current_password, user.password):
            raise ValidationError("Current password is incorrect")

        user.password = get_password_hash(password_data.new_password)
        db.commit()
