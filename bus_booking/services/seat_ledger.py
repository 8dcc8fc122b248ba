"""
Seat ledger: booking creation and cancellation against trip inventory.

CONCURRENCY STRATEGY: Row Locks + Compare-and-Set + Live-Seat Index
===================================================================

Problem:
  Two passengers pick seat 7 on the same trip at the same moment.
  Both see it free, both insert a booked seat row, both decrement the
  trip counter. Result: one physical seat, two tickets, and a counter
  that no longer matches the seat rows.

Solution:
  Every operation runs in exactly one database transaction, opened from
  the session factory injected into SeatLedger.

  1. The trip row is read with SELECT ... FOR UPDATE, so creations and
     cancellations on one trip take turns on PostgreSQL.
  2. The counter moves with
       UPDATE trips SET available_seats = available_seats + :delta,
                        version = version + 1
       WHERE id = :trip_id AND version = :read_version
         AND available_seats + :delta BETWEEN 0 AND total_seats
     If no row matches, the inventory moved under us and the whole
     transaction is abandoned (ConcurrentUpdateError). Backends without
     row locks still get a correct counter this way.
  3. The partial unique index on booking_seats(trip_id, seat_number)
     WHERE status = 'booked' rejects a second live row for a seat even
     if both transactions passed the availability check.

  Cancellations lock the booking first and the trip second; creation
  only locks the trip. No retries happen here: transient failures are
  raised and the caller decides whether to try again.

Counter invariant maintained by every operation:
  trips.available_seats == trips.total_seats - count(booked seat rows)
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bus_booking.core.config import get_settings
from bus_booking.core.errors import (
    BookingError,
    BookingNotFoundError,
    ConcurrentUpdateError,
    InvalidSeatSelectionError,
    InventoryInconsistencyError,
    NoSeatsToCancelError,
    SeatUnavailableError,
    StorageError,
    TripNotBookableError,
    TripNotFoundError,
)
from bus_booking.core.logging import get_logger
from bus_booking.core.metrics import (
    ledger_latency,
    record_ledger_operation,
    record_seats_booked,
    record_seats_released,
)
from bus_booking.db.session import get_session_factory
from bus_booking.models.booking import Booking, BookingSeat, BookingStatus, PaymentStatus, SeatStatus
from bus_booking.models.trip import Trip, TripStatus
from bus_booking.schemas.booking import BookingRead, SeatSelection
from bus_booking.services.user_service import require_user

logger = get_logger(__name__)

LIVE_SEAT_INDEX = "uq_booked_trip_seat"
# SQLite names the columns instead of the index
_SQLITE_LIVE_SEAT_MESSAGE = "booking_seats.trip_id, booking_seats.seat_number"


def is_live_seat_conflict(exc: IntegrityError) -> bool:
    """True when the live-seat index rejected a second booked row for a seat."""
    driver_error = getattr(exc.orig, "__cause__", None)
    constraint = getattr(driver_error, "constraint_name", None)
    if constraint is not None:
        return constraint == LIVE_SEAT_INDEX
    message = str(exc.orig)
    return LIVE_SEAT_INDEX in message or _SQLITE_LIVE_SEAT_MESSAGE in message


@asynccontextmanager
async def _track(operation: str) -> AsyncIterator[None]:
    """Record outcome and latency of one ledger operation."""
    start = time.perf_counter()
    try:
        yield
    except StorageError as exc:
        record_ledger_operation(operation, exc.kind.value)
        logger.error("ledger_storage_failure", operation=operation, error=exc.message)
        raise
    except BookingError as exc:
        record_ledger_operation(operation, exc.kind.value)
        logger.info("ledger_request_rejected", operation=operation, kind=exc.kind.value, reason=exc.message)
        raise
    else:
        record_ledger_operation(operation, "success")
    finally:
        ledger_latency.labels(operation=operation).observe(time.perf_counter() - start)


class SeatLedger:
    """
    Owns every write to booking seat rows and trip seat counters.

    Each public method is one atomic unit: it either commits all of its
    booking and inventory changes or none of them.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_seats_per_booking: Optional[int] = None,
        refund_paid_on_cancel: Optional[bool] = None,
    ):
        settings = get_settings()
        self._session_factory = session_factory
        self.max_seats_per_booking = (
            max_seats_per_booking if max_seats_per_booking is not None
            else settings.MAX_SEATS_PER_BOOKING
        )
        self.refund_paid_on_cancel = (
            refund_paid_on_cancel if refund_paid_on_cancel is not None
            else settings.REFUND_PAID_BOOKINGS_ON_CANCEL
        )

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except DBAPIError as exc:
                raise StorageError(f"Transaction aborted: {exc.orig}") from exc
            except PoolTimeoutError as exc:
                raise StorageError("No database connection available") from exc

    # ------------------------------------------------------------------
    # Booking creation
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        user_id: int,
        trip_id: int,
        seat_numbers: Sequence[int],
    ) -> BookingRead:
        """
        Reserve `seat_numbers` on a trip for a user.

        All seats are booked or none are; the trip counter drops by the
        number of seats in the same transaction.
        """
        async with _track("create_booking"):
            seats = self._validate_selection(seat_numbers)

            async with self._transaction() as session:
                await require_user(session, user_id)
                trip = await self._lock_trip(session, trip_id)

                if trip.status != TripStatus.SCHEDULED.value:
                    raise TripNotBookableError(trip_id, trip.status)

                missing = [n for n in seats if n > trip.total_seats]
                if missing:
                    raise InvalidSeatSelectionError(
                        f"Trip {trip_id} has {trip.total_seats} seats; "
                        f"no seat numbered {', '.join(str(n) for n in missing)}"
                    )

                taken = await self._taken_seats(session, trip_id, seats)
                if taken:
                    logger.warning(
                        "booking_failed_seats_taken",
                        trip_id=trip_id,
                        requested=seats,
                        taken=sorted(taken),
                    )
                    raise SeatUnavailableError(taken)

                if trip.available_seats < len(seats):
                    raise SeatUnavailableError(
                        seats,
                        message=(
                            f"Not enough seats. Requested: {len(seats)}, "
                            f"Available: {trip.available_seats}"
                        ),
                    )

                await self._adjust_inventory(session, trip, -len(seats))

                booking = Booking(
                    user_id=user_id,
                    trip_id=trip_id,
                    booking_status=BookingStatus.CONFIRMED.value,
                    payment_status=PaymentStatus.PENDING.value,
                    seats=[
                        BookingSeat(trip_id=trip_id, seat_number=n, status=SeatStatus.BOOKED.value)
                        for n in seats
                    ],
                )
                session.add(booking)
                try:
                    await session.flush()
                except IntegrityError as exc:
                    if not is_live_seat_conflict(exc):
                        raise
                    raise SeatUnavailableError(
                        seats, message="One or more seats were just booked by someone else"
                    ) from exc

                result = BookingRead.model_validate(booking)

        record_seats_booked(len(seats))
        logger.info(
            "booking_created",
            booking_id=result.id,
            user_id=user_id,
            trip_id=trip_id,
            seats=seats,
        )
        return result

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_booking(self, booking_id: int, user_id: int) -> BookingRead:
        """
        Cancel every live seat of a booking owned by `user_id` and give
        them back to the trip.
        """
        async with _track("cancel_booking"):
            async with self._transaction() as session:
                await require_user(session, user_id)
                booking = await self._lock_booking(session, booking_id, user_id)

                active = booking.active_seats
                if not active:
                    raise NoSeatsToCancelError("Booking is already cancelled")

                trip = await self._lock_trip(session, booking.trip_id)
                self._check_release(trip, len(active))

                was_paid = booking.payment_status == PaymentStatus.PAID.value
                for seat in active:
                    seat.status = SeatStatus.CANCELLED.value
                booking.booking_status = BookingStatus.CANCELLED.value
                booking.payment_status = (
                    PaymentStatus.REFUNDED.value
                    if was_paid and self.refund_paid_on_cancel
                    else PaymentStatus.FAILED.value
                )

                await self._adjust_inventory(session, trip, len(active))
                await session.flush()
                result = BookingRead.model_validate(booking)

        record_seats_released("cancel_booking", len(active))
        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            user_id=user_id,
            trip_id=result.trip_id,
            seats_restored=len(active),
            payment_status=result.payment_status.value,
        )
        return result

    async def cancel_seats(
        self,
        booking_id: int,
        seat_numbers: Sequence[int],
        user_id: Optional[int] = None,
    ) -> BookingRead:
        """
        Cancel the requested seats of a booking.

        Only seats that belong to the booking and are still booked change;
        anything else in the request is ignored. If nothing is left to
        cancel the call fails with NoSeatsToCancelError and writes nothing.
        When `user_id` is given the booking must belong to that user.
        """
        async with _track("cancel_seats"):
            requested = set(seat_numbers)

            async with self._transaction() as session:
                booking = await self._lock_booking(session, booking_id, user_id)
                trip = await self._lock_trip(session, booking.trip_id)

                eligible = [seat for seat in booking.active_seats if seat.seat_number in requested]
                if not eligible:
                    raise NoSeatsToCancelError()

                self._check_release(trip, len(eligible))
                for seat in eligible:
                    seat.status = SeatStatus.CANCELLED.value

                booking.refresh_status()
                if booking.booking_status == BookingStatus.CANCELLED.value:
                    booking.payment_status = PaymentStatus.REFUNDED.value
                else:
                    booking.payment_status = PaymentStatus.PARTIALLY_REFUNDED.value

                await self._adjust_inventory(session, trip, len(eligible))
                await session.flush()
                result = BookingRead.model_validate(booking)

        cancelled = sorted(seat.seat_number for seat in eligible)
        record_seats_released("cancel_seats", len(cancelled))
        logger.info(
            "seats_cancelled",
            booking_id=booking_id,
            trip_id=result.trip_id,
            seats=cancelled,
            ignored=sorted(requested.difference(cancelled)),
            booking_status=result.booking_status.value,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_selection(self, seat_numbers: Sequence[int]) -> list[int]:
        try:
            selection = SeatSelection(seat_numbers=list(seat_numbers))
        except ValidationError as exc:
            reasons = "; ".join(error["msg"] for error in exc.errors())
            raise InvalidSeatSelectionError(f"Invalid seat selection: {reasons}") from exc

        if len(selection.seat_numbers) > self.max_seats_per_booking:
            raise InvalidSeatSelectionError(
                f"At most {self.max_seats_per_booking} seats can be booked at once"
            )
        return selection.seat_numbers

    @staticmethod
    async def _lock_trip(session: AsyncSession, trip_id: int) -> Trip:
        result = await session.execute(
            select(Trip).where(Trip.id == trip_id).with_for_update()
        )
        trip = result.scalar_one_or_none()
        if trip is None:
            raise TripNotFoundError(trip_id)
        return trip

    @staticmethod
    async def _lock_booking(
        session: AsyncSession,
        booking_id: int,
        user_id: Optional[int],
    ) -> Booking:
        # Owner goes into the same query: someone else's booking looks missing
        query = select(Booking).where(Booking.id == booking_id)
        if user_id is not None:
            query = query.where(Booking.user_id == user_id)

        result = await session.execute(query.with_for_update())
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    async def _taken_seats(session: AsyncSession, trip_id: int, seats: list[int]) -> set[int]:
        result = await session.execute(
            select(BookingSeat.seat_number).where(
                BookingSeat.trip_id == trip_id,
                BookingSeat.status == SeatStatus.BOOKED.value,
                BookingSeat.seat_number.in_(seats),
            )
        )
        return set(result.scalars().all())

    @staticmethod
    def _check_release(trip: Trip, count: int) -> None:
        if trip.available_seats + count > trip.total_seats:
            logger.error(
                "inventory_overflow",
                trip_id=trip.id,
                available=trip.available_seats,
                total=trip.total_seats,
                releasing=count,
            )
            raise InventoryInconsistencyError(
                f"Releasing {count} seats would push trip {trip.id} above its capacity"
            )

    async def _adjust_inventory(self, session: AsyncSession, trip: Trip, delta: int) -> None:
        """Move the trip counter by `delta`, compare-and-set on version."""
        new_available = Trip.available_seats + delta
        result = await session.execute(
            update(Trip)
            .where(
                Trip.id == trip.id,
                Trip.version == trip.version,
                new_available >= 0,
                new_available <= Trip.total_seats,
            )
            .values(available_seats=new_available, version=Trip.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info("inventory_version_conflict", trip_id=trip.id, version=trip.version)
            raise ConcurrentUpdateError(trip.id)


def get_seat_ledger() -> SeatLedger:
    """FastAPI dependency: a ledger bound to the application session factory."""
    return SeatLedger(get_session_factory())
