"""SQLAlchemy-backed durable booking store.

Reservations are serialized per item with a transaction-scoped PostgreSQL
advisory lock; the `ex_bookings_active_range` exclusion constraint (see the
Alembic migrations) rejects any overlap that slips past it. SQLite engines
built by `make_engine` open every transaction with `BEGIN IMMEDIATE`, so the
database write lock serializes reservations there. Status writes are
guarded by `(booking_id, state_version)`.
"""

from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError

from rentpay.common.errors import BookingNotFoundError, ConcurrentModificationError, StorageUnavailableError
from rentpay.common.logging import logger
from rentpay.common.records import (
    Booking,
    BookingStatus,
    BookingTransition,
    Breakdown,
    PaymentOrder,
    PaymentStatus,
)
from rentpay.common.state_machine import ACTIVE_STATUSES
from rentpay.services.bookings.availability import find_conflicts
from rentpay.storage.base import BookingStore
from rentpay.storage.models import BookingRow, BookingTransitionRow, PaymentOrderRow

EXCLUSION_VIOLATION = "23P01"


def _is_exclusion_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # psycopg2 exposes `pgcode`, psycopg 3 exposes `sqlstate`.
    return EXCLUSION_VIOLATION in (getattr(orig, "pgcode", None), getattr(orig, "sqlstate", None))


def _to_booking(row: BookingRow) -> Booking:
    return Booking(
        booking_id=row.booking_id,
        item_id=row.item_id,
        requester_id=row.requester_id,
        start_date=row.start_date,
        end_date=row.end_date,
        status=row.status,
        payment_status=row.payment_status,
        version=row.state_version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_order(row: PaymentOrderRow) -> PaymentOrder:
    return PaymentOrder(
        order_id=row.order_id,
        booking_id=row.booking_id,
        attempt_number=row.attempt_number,
        amount_minor_units=row.amount_minor_units,
        currency=row.currency,
        breakdown=Breakdown(
            rent_payment=row.rent_payment,
            platform_fee=row.platform_fee,
            safety_deposit=row.safety_deposit,
            total=row.total,
        ),
        receipt=row.receipt,
        created_at=row.created_at,
    )


class SqlBookingStore(BookingStore):
    """Durable store over a SQLAlchemy session factory."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self):
        try:
            with self.session_factory() as db:
                yield db
        except OperationalError as exc:
            logger.error("storage_unavailable error=%s", exc)
            raise StorageUnavailableError("booking storage unavailable") from exc

    def _lock_item(self, db, item_id: str) -> None:
        """Serialize reservations of one item until the transaction ends.

        SQLite already holds the database write lock from `BEGIN IMMEDIATE`.
        """

        if db.get_bind().dialect.name == "postgresql":
            db.execute(select(func.pg_advisory_xact_lock(func.hashtext(item_id))))

    def reserve(self, booking: Booking) -> bool:
        with self._session() as db:
            self._lock_item(db, booking.item_id)
            rows = db.execute(
                select(BookingRow).where(
                    BookingRow.item_id == booking.item_id,
                    BookingRow.status.in_(sorted(ACTIVE_STATUSES)),
                )
            ).scalars().all()
            if find_conflicts([_to_booking(row) for row in rows], booking.start_date, booking.end_date):
                return False

            db.add(
                BookingRow(
                    booking_id=booking.booking_id,
                    item_id=booking.item_id,
                    requester_id=booking.requester_id,
                    start_date=booking.start_date,
                    end_date=booking.end_date,
                    status=booking.status.value,
                    payment_status=booking.payment_status.value,
                    state_version=booking.version,
                    created_at=booking.created_at,
                    updated_at=booking.updated_at,
                )
            )
            try:
                # The exclusion constraint fires at flush time.
                db.flush()
                db.add(
                    BookingTransitionRow(
                        booking_id=booking.booking_id,
                        from_status=None,
                        to_status=booking.status.value,
                        payment_status=booking.payment_status.value,
                        reason="booking_created",
                        actor_id=booking.requester_id,
                    )
                )
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if _is_exclusion_violation(exc):
                    return False
                raise
            return True

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._session() as db:
            row = db.get(BookingRow, booking_id)
            return _to_booking(row) if row else None

    def active_bookings(self, item_id: str) -> list[Booking]:
        with self._session() as db:
            rows = db.execute(
                select(BookingRow)
                .where(BookingRow.item_id == item_id, BookingRow.status.in_(sorted(ACTIVE_STATUSES)))
                .order_by(BookingRow.start_date)
            ).scalars().all()
            return [_to_booking(row) for row in rows]

    def bookings_for_requester(self, requester_id: str) -> list[Booking]:
        with self._session() as db:
            rows = db.execute(
                select(BookingRow)
                .where(BookingRow.requester_id == requester_id)
                .order_by(BookingRow.created_at.desc())
            ).scalars().all()
            return [_to_booking(row) for row in rows]

    def bookings_for_items(self, item_ids: list[str]) -> list[Booking]:
        if not item_ids:
            return []
        with self._session() as db:
            rows = db.execute(
                select(BookingRow)
                .where(BookingRow.item_id.in_(item_ids))
                .order_by(BookingRow.created_at.desc())
            ).scalars().all()
            return [_to_booking(row) for row in rows]

    def compare_and_set(
        self,
        current: Booking,
        *,
        status: BookingStatus,
        payment_status: PaymentStatus,
        reason: str,
        actor_id: str | None = None,
    ) -> Booking:
        now = datetime.now(timezone.utc)
        with self._session() as db:
            result = db.execute(
                update(BookingRow)
                .where(
                    BookingRow.booking_id == current.booking_id,
                    BookingRow.state_version == current.version,
                )
                .values(
                    status=status.value,
                    payment_status=payment_status.value,
                    state_version=current.version + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                if db.get(BookingRow, current.booking_id) is None:
                    raise BookingNotFoundError(f"booking {current.booking_id} not found")
                raise ConcurrentModificationError(
                    f"optimistic concurrency conflict for booking {current.booking_id} "
                    f"(expected version {current.version})"
                )
            db.add(
                BookingTransitionRow(
                    booking_id=current.booking_id,
                    from_status=current.status.value,
                    to_status=status.value,
                    payment_status=payment_status.value,
                    reason=reason,
                    actor_id=actor_id,
                )
            )
            db.commit()
        return current.model_copy(
            update={
                "status": status,
                "payment_status": payment_status,
                "version": current.version + 1,
                "updated_at": now,
            }
        )

    def transitions(self, booking_id: str) -> list[BookingTransition]:
        with self._session() as db:
            rows = db.execute(
                select(BookingTransitionRow)
                .where(BookingTransitionRow.booking_id == booking_id)
                .order_by(BookingTransitionRow.created_at)
            ).scalars().all()
            return [
                BookingTransition(
                    booking_id=row.booking_id,
                    from_status=row.from_status,
                    to_status=row.to_status,
                    payment_status=row.payment_status,
                    reason=row.reason,
                    actor_id=row.actor_id,
                    created_at=row.created_at,
                )
                for row in rows
            ]

    def add_order(self, order: PaymentOrder) -> PaymentOrder:
        with self._session() as db:
            db.add(
                PaymentOrderRow(
                    order_id=order.order_id,
                    booking_id=order.booking_id,
                    attempt_number=order.attempt_number,
                    amount_minor_units=order.amount_minor_units,
                    currency=order.currency,
                    rent_payment=order.breakdown.rent_payment,
                    platform_fee=order.breakdown.platform_fee,
                    safety_deposit=order.breakdown.safety_deposit,
                    total=order.breakdown.total,
                    receipt=order.receipt,
                    created_at=order.created_at,
                )
            )
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConcurrentModificationError(
                    f"payment attempt {order.attempt_number} already recorded for booking {order.booking_id}"
                ) from exc
            return order

    def get_order(self, order_id: str) -> PaymentOrder | None:
        with self._session() as db:
            row = db.get(PaymentOrderRow, order_id)
            return _to_order(row) if row else None

    def latest_order(self, booking_id: str) -> PaymentOrder | None:
        with self._session() as db:
            row = db.execute(
                select(PaymentOrderRow)
                .where(PaymentOrderRow.booking_id == booking_id)
                .order_by(PaymentOrderRow.attempt_number.desc())
                .limit(1)
            ).scalar_one_or_none()
            return _to_order(row) if row else None
