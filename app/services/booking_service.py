import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import (
    BookingError, InvalidStateError, NotFoundError, SlotUnavailableError, ValidationError
)
from app.models.booking import (
    Booking, BookingItem, BookingNotification, BookingStatus, CancelledBy,
    NotificationChannel, NotificationType, PaymentStatus, ScheduleDay
)
from app.models.service import Service
from app.models.user import User, UserRole
from app.schemas.booking import BookingCreate, BookingStatusUpdate
from app.services.account_service import AccountService
from app.services.booking_rules import (
    ACTIVE_STATUSES, STATUS_MESSAGES, TimeSlot, can_be_cancelled, check_transition,
    is_past_due, is_schedulable, is_today, scheduled_start
)
from app.services.gateways import NotificationGateway, PaymentGateway
from app.services.pricing import PriceQuote, aggregate, calculate_total, to_minor_units

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """Booking lifecycle over one request-scoped session.

    Gateways, clock and business timezone are injected so the rules can be
    exercised deterministically.
    """

    def __init__(
        self,
        db: Session,
        notifications: NotificationGateway,
        payments: PaymentGateway,
        clock: Callable[[], datetime] = utc_now,
        tz: Optional[tzinfo] = None,
        cancellation_cutoff: Optional[timedelta] = None,
        max_past: Optional[timedelta] = None,
    ):
        self.db = db
        self.notifications = notifications
        self.payments = payments
        self.clock = clock
        self.tz = tz or ZoneInfo(settings.BUSINESS_TIMEZONE)
        if cancellation_cutoff is None:
            cancellation_cutoff = timedelta(hours=settings.CANCELLATION_CUTOFF_HOURS)
        if max_past is None:
            max_past = timedelta(hours=settings.MAX_BOOKING_PAST_HOURS)
        self.cancellation_cutoff = cancellation_cutoff
        self.max_past = max_past

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    # Pricing

    def _get_service(self, service_id: int):
        return self.db.query(Service).filter(Service.id == service_id).first()

    def quote(self, lines: Sequence) -> PriceQuote:
        return aggregate(lines, self._get_service, self.today())

    # Slots

    def find_overlapping(self, scheduled_date: date, slot: TimeSlot, statuses=ACTIVE_STATUSES,
                         exclude_id: Optional[int] = None):
        # zero-padded HH:mm strings order the same way as the times they encode,
        # so this is the half-open test start < other.end and other.start < end
        query = self.db.query(Booking).filter(
            Booking.scheduled_date == scheduled_date,
            Booking.status.in_(statuses),
            Booking.slot_start < f"{slot.end:%H:%M}",
            Booking.slot_end > f"{slot.start:%H:%M}",
        )
        if exclude_id is not None:
            query = query.filter(Booking.id != exclude_id)
        return query.order_by(Booking.slot_start).all()

    def is_slot_available(self, scheduled_date: date, start: str, end: str) -> bool:
        slot = TimeSlot.parse(start, end)
        return not self.find_overlapping(scheduled_date, slot)

    def check_slot(self, scheduled_date: date, slot: TimeSlot):
        conflicts = self.find_overlapping(scheduled_date, slot)
        if conflicts:
            logger.info(
                "Slot %s on %s conflicts with booking %s",
                slot, scheduled_date, conflicts[0].id,
                extra={"booking_id": conflicts[0].id},
            )
            raise SlotUnavailableError("Time slot is not available")

    def _lock_day(self, scheduled_date: date):
        """Take the write lock on the date's schedule row, creating it if needed.

        Held until the surrounding transaction ends, so concurrent creations for
        the same date run their conflict check one after the other.
        """
        for attempt in range(2):
            updated = self.db.query(ScheduleDay).filter(ScheduleDay.day == scheduled_date).update(
                {ScheduleDay.version: ScheduleDay.version + 1},
                synchronize_session=False,
            )
            if updated:
                return

            self.db.add(ScheduleDay(day=scheduled_date, version=1))
            try:
                self.db.flush()
                return
            except IntegrityError:
                # lost the race to create the row; retry and wait on its lock instead
                self.db.rollback()
                if attempt:
                    raise

    # Create

    def create_booking(self, user: User, booking_data: BookingCreate) -> Booking:
        slot = TimeSlot.parse(booking_data.time_slot.start, booking_data.time_slot.end)
        now = self.clock()

        if not is_schedulable(booking_data.scheduled_date, now, self.tz, self.max_past):
            raise ValidationError("Booking date cannot be in the past")

        quote = self.quote(booking_data.services)
        if quote.total_duration < 15:
            raise ValidationError("Estimated duration must be at least 15 minutes")

        user_id = user.id
        discount_amount = 0.0
        location = booking_data.location.model_dump(mode="json") if booking_data.location else {"type": "onsite"}

        try:
            self._lock_day(booking_data.scheduled_date)
            self.check_slot(booking_data.scheduled_date, slot)

            items = [
                BookingItem(
                    position=position,
                    service_id=line.service_id,
                    quantity=line.quantity,
                    price=line.unit_price,
                    duration=line.duration,
                    loyalty_points=line.loyalty_points,
                    addons=list(line.addons),
                )
                for position, line in enumerate(quote.lines)
            ]
            booking = Booking(
                user_id=user_id,
                scheduled_date=booking_data.scheduled_date,
                slot_start=booking_data.time_slot.start,
                slot_end=booking_data.time_slot.end,
                status=BookingStatus.PENDING,
                vehicle=booking_data.vehicle.model_dump(mode="json"),
                location=location,
                total_amount=calculate_total(items, discount_amount),
                discount_amount=discount_amount,
                loyalty_points_earned=quote.total_loyalty_points,
                estimated_duration=quote.total_duration,
                payment_status=PaymentStatus.PENDING,
                payment_method=booking_data.payment_method,
                notes=booking_data.notes,
                special_requests=booking_data.special_requests,
                items=items,
            )
            self.db.add(booking)
            self.db.commit()
        except BookingError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Error creating booking", extra={"user_id": user_id})
            raise

        self.db.refresh(booking)
        logger.info(
            "Booking created for %s %s",
            booking.scheduled_date, slot,
            extra={"booking_id": booking.id, "user_id": user_id},
        )

        self._notify(
            booking,
            NotificationType.BOOKING_CONFIRMED,
            "Booking Received",
            f"Your booking for {booking.scheduled_date:%d/%m/%Y} at {booking.slot_start} has been received.",
            {"type": "booking_confirmed"},
        )
        return booking

    # Queries

    def _booking_query(self):
        return self.db.query(Booking).options(
            selectinload(Booking.items),
            selectinload(Booking.notifications),
        )

    def get_booking(self, booking_id: int, user_id: Optional[int] = None) -> Booking:
        """Fetch a booking; with ``user_id`` only the owner's booking is visible"""
        query = self._booking_query().filter(Booking.id == booking_id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        booking = query.first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_user_bookings(self, user_id: int, booking_status: Optional[BookingStatus] = None,
                           page: int = 1, limit: int = 10):
        query = self._booking_query().filter(Booking.user_id == user_id)
        if booking_status:
            query = query.filter(Booking.status == booking_status)

        total = query.count()
        bookings = (query.order_by(Booking.scheduled_date.desc(), Booking.slot_start.desc())
                    .offset((page - 1) * limit).limit(limit).all())
        return bookings, total

    def list_all_bookings(self, booking_status: Optional[BookingStatus] = None,
                          on: Optional[date] = None, page: int = 1, limit: int = 20):
        query = self._booking_query()
        if booking_status:
            query = query.filter(Booking.status == booking_status)
        if on:
            query = query.filter(Booking.scheduled_date == on)

        total = query.count()
        bookings = (query.order_by(Booking.scheduled_date, Booking.slot_start)
                    .offset((page - 1) * limit).limit(limit).all())
        return bookings, total

    def schedule_flags(self, booking: Booking) -> dict:
        now = self.clock()
        return {
            "is_today": is_today(booking.scheduled_date, now, self.tz),
            "is_past_due": is_past_due(booking.status, booking.scheduled_date, booking.slot_end, now, self.tz),
        }

    # Status transitions

    def update_status(self, booking_id: int, update: BookingStatusUpdate) -> Booking:
        booking = self.get_booking(booking_id)
        target = update.status

        if target == BookingStatus.CANCELLED:
            if booking.status == BookingStatus.CANCELLED:
                raise InvalidStateError("Booking is already cancelled")
            check_transition(booking.status, target)
            return self._cancel(booking, update.reason or "Cancelled by staff", CancelledBy.ADMIN)

        changed = check_transition(booking.status, target)

        values = {}
        if update.staff_id is not None:
            staff = self.db.query(User).filter(User.id == update.staff_id).first()
            if not staff or staff.role not in (UserRole.STAFF, UserRole.ADMIN):
                raise NotFoundError("Staff member not found")
            values[Booking.staff_id] = staff.id
        if update.actual_start_time:
            values[Booking.actual_start_time] = update.actual_start_time
        if update.actual_end_time:
            values[Booking.actual_end_time] = update.actual_end_time

        prior = booking.status
        if changed:
            values[Booking.status] = target
        elif not values:
            return booking

        # compare-and-set: only the request that moves the booking out of
        # ``prior`` writes its fields and runs the side effects
        transitioned = bool(self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == prior,
        ).update(values, synchronize_session=False))

        if not transitioned:
            self.db.rollback()
            self.db.refresh(booking)
            logger.info("Booking status already changed by another request", extra={"booking_id": booking.id})
            if booking.status != target:
                raise InvalidStateError(
                    f"Cannot change booking status from {booking.status.value} to {target.value}"
                )
            return booking

        if changed and target == BookingStatus.COMPLETED:
            AccountService.add_loyalty_points(self.db, booking.user_id, booking.loyalty_points_earned)
            AccountService.increment_completed_bookings(self.db, booking.user_id)

        self.db.commit()
        self.db.refresh(booking)

        if changed:
            logger.info(
                "Booking status changed to %s", target.value,
                extra={"booking_id": booking.id, "status": target.value},
            )
            self._notify_status(booking, target)
        return booking

    # Cancellation

    def cancel_booking(self, booking_id: int, user_id: int, reason: str) -> Booking:
        booking = self.get_booking(booking_id, user_id=user_id)

        if not (reason or "").strip():
            raise ValidationError("Cancellation reason is required")

        starts_at = scheduled_start(booking.scheduled_date, booking.slot_start, self.tz)
        if not can_be_cancelled(booking.status, starts_at, self.clock(), self.cancellation_cutoff):
            raise InvalidStateError("Booking cannot be cancelled at this time")

        return self._cancel(booking, reason, CancelledBy.USER)

    def _cancel(self, booking: Booking, reason: str, actor: CancelledBy) -> Booking:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Cancellation reason is required")

        prior = booking.status
        cancelled = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == prior,
        ).update({
            Booking.status: BookingStatus.CANCELLED,
            Booking.cancellation_reason: reason,
            Booking.cancelled_by: actor,
            Booking.cancelled_at: self.clock(),
        }, synchronize_session=False)
        if not cancelled:
            self.db.rollback()
            raise InvalidStateError("Booking cannot be cancelled at this time")

        self.db.commit()
        self.db.refresh(booking)
        logger.info(
            "Booking cancelled by %s", actor.value,
            extra={"booking_id": booking.id, "status": BookingStatus.CANCELLED.value},
        )

        # the cancellation stands even if the refund below fails
        self._refund_if_paid(booking)
        self._notify_status(booking, BookingStatus.CANCELLED)
        return booking

    def _refund_if_paid(self, booking: Booking):
        if booking.payment_status != PaymentStatus.PAID or not booking.payment_intent_id:
            return

        amount = booking.total_amount
        try:
            result = self.payments.refund(booking.payment_intent_id, to_minor_units(amount))
        except Exception:
            logger.exception(
                "Refund failed; booking left unrefunded for reconciliation",
                extra={"booking_id": booking.id},
            )
            return

        booking.payment_status = PaymentStatus.REFUNDED
        booking.refund_amount = amount
        booking.refund_processed = True
        self.db.commit()
        self.db.refresh(booking)
        logger.info(
            "Refund %s processed for %.2f", result.refund_id, amount,
            extra={"booking_id": booking.id},
        )

    # Rating

    def rate_booking(self, booking_id: int, user_id: int, score: int, comment: Optional[str] = None) -> Booking:
        booking = self.get_booking(booking_id, user_id=user_id)

        if not 1 <= score <= 5:
            raise ValidationError("Score must be between 1 and 5")
        if comment and len(comment.strip()) > 500:
            raise ValidationError("Comment too long")
        if booking.status != BookingStatus.COMPLETED:
            raise InvalidStateError("Can only rate completed bookings")
        if booking.is_rated:
            raise InvalidStateError("Booking already rated")

        rated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.rating_score.is_(None),
        ).update({
            Booking.rating_score: score,
            Booking.rating_comment: comment.strip() if comment else None,
            Booking.rated_at: self.clock(),
        }, synchronize_session=False)
        if not rated:
            self.db.rollback()
            raise InvalidStateError("Booking already rated")

        self.db.commit()
        self.db.refresh(booking)
        return booking

    # Notifications

    def _notify_status(self, booking: Booking, new_status: BookingStatus):
        message = STATUS_MESSAGES.get(new_status)
        if not message:
            return
        self._notify(
            booking,
            NotificationType(new_status.value),
            "Booking Update",
            message,
            {"type": "booking_update", "status": new_status.value},
        )

    def _notify(self, booking: Booking, notification_type: NotificationType, title: str, body: str, data: dict):
        """Best-effort push to the booking owner; never raises"""
        user = self.db.query(User).filter(User.id == booking.user_id).first()
        tokens = user.active_push_tokens if user else []
        if not tokens:
            return

        payload = dict(data, bookingId=str(booking.id))
        try:
            result = self.notifications.send(tokens, title, body, payload)
        except Exception:
            logger.warning(
                "Failed to send push notification",
                exc_info=True,
                extra={"booking_id": booking.id, "user_id": booking.user_id},
            )
            return

        if not result.success_count:
            return

        try:
            self.db.add(BookingNotification(
                booking_id=booking.id,
                type=notification_type,
                channel=NotificationChannel.PUSH,
                sent_at=self.clock(),
            ))
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Could not record notification", exc_info=True, extra={"booking_id": booking.id})
