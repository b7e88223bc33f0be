from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.models.user import User

class AccountService:
    """Loyalty and counter mutations.

    Both operations are single ``UPDATE col = col + n`` statements so concurrent
    completions never lose an increment. They do not commit; the caller's unit
    of work does.
    """

    @staticmethod
    def add_loyalty_points(db: Session, user_id: int, delta: int) -> None:
        if delta < 0:
            raise ValidationError("Loyalty points can only be added")
        if delta == 0:
            return
        updated = db.query(User).filter(User.id == user_id).update(
            {User.loyalty_points: User.loyalty_points + delta},
            synchronize_session=False,
        )
        if not updated:
            raise NotFoundError("User not found")

    @staticmethod
    def increment_completed_bookings(db: Session, user_id: int) -> None:
        updated = db.query(User).filter(User.id == user_id).update(
            {User.total_bookings: User.total_bookings + 1},
            synchronize_session=False,
        )
        if not updated:
            raise NotFoundError("User not found")
