"""
storefront/services/booking_board.py - Admin booking board.

One board per signed-in admin. A board owns:

* the authoritative booking list, fully replaced by every live snapshot of the
  `bookings` collection and kept most-recent-first by `createdAt`;
* the filter state (free text, status, shop) from which the visible list is
  re-derived on demand by pure functions;
* at most one staged status change awaiting confirmation;
* a transient status message that expires on its own.

Moving a booking to `Returned` refunds the payment through the refund gateway
before the status is written; every other status is a plain document update.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from starlette.concurrency import run_in_threadpool

from storefront.core.errors import BoardError
from storefront.core.results import Failure, Result, Success
from storefront.integrations.refunds import RefundGateway
from storefront.repositories.documents import BOOKINGS, SERVER_TIMESTAMP, Document, DocumentStore
from storefront.schemas.booking import (
    SELECTABLE_STATUSES,
    BoardView,
    Booking,
    BookingOut,
    BookingStatus,
    PendingStatusChange,
    RefundStatus,
)
from storefront.schemas.principal import AdminProfile
from storefront.services.session import SUPERADMIN
from storefront.utils.categories import normalize

logger = logging.getLogger("storefront.bookings")

ALL = "all"
EMPTY_LABEL = "—"
PROCESSING_MESSAGE = "Processing refund..."


# --- Pure derivations ---------------------------------------------------------

def sort_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    """Most recent first by `createdAt` seconds; missing timestamps sort as 0."""
    return sorted(bookings, key=lambda b: b.created_seconds, reverse=True)


def is_super_admin(admin: Optional[AdminProfile]) -> bool:
    return bool(admin and admin.role == SUPERADMIN)


def in_my_shops(booking: Booking, admin: Optional[AdminProfile]) -> bool:
    """
    Superadmins see everything. Scoped admins see bookings whose shop equals
    their *first* category; no categories means nothing is visible.
    """
    if is_super_admin(admin):
        return True
    if not admin or not admin.categories:
        return False
    return normalize(booking.shop) == normalize(admin.categories[0])


def matches_text(booking: Booking, text: str) -> bool:
    needle = (text or "").strip().lower()
    if not needle:
        return True
    return any(
        value and needle in str(value).lower()
        for value in (booking.customer_name, booking.customer_phone, booking.customer_email)
    )


def matches_status(booking: Booking, status: str) -> bool:
    return status == ALL or booking.status == status


def matches_shop(booking: Booking, shop: str, admin: Optional[AdminProfile]) -> bool:
    if not is_super_admin(admin) or shop == ALL:
        return True
    return normalize(booking.shop) == normalize(shop)


def filter_bookings(
    bookings: Iterable[Booking],
    admin: Optional[AdminProfile],
    text: str = "",
    status: str = ALL,
    shop: str = ALL,
) -> List[Booking]:
    return [
        b for b in bookings
        if in_my_shops(b, admin)
        and matches_text(b, text)
        and matches_status(b, status)
        and matches_shop(b, shop, admin)
    ]


def shop_options(bookings: Iterable[Booking], admin: Optional[AdminProfile]) -> List[str]:
    """Distinct shop names for the superadmin shop filter."""
    if not is_super_admin(admin):
        return []
    return sorted({b.shop for b in bookings if b.shop})


def created_label(value) -> str:
    """`createdAt` as e.g. '01 Jun 2026'; the em-dash placeholder when unknown."""
    try:
        if value is None:
            return EMPTY_LABEL
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, str):
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            seconds = getattr(value, "seconds", None)
            if seconds is None and isinstance(value, dict):
                seconds = value.get("seconds") or value.get("_seconds")
            if seconds is None:
                return EMPTY_LABEL
            dt = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
        return dt.strftime("%d %b %Y")
    except (TypeError, ValueError, OverflowError, OSError):
        return EMPTY_LABEL


def services_summary(booking: Booking) -> str:
    if booking.service_details:
        return ", ".join(str(s.name or "") for s in booking.service_details)
    if isinstance(booking.service, list) and booking.service:
        return ", ".join(str(s) for s in booking.service)
    return EMPTY_LABEL


def to_booking_out(booking: Booking, label: str) -> BookingOut:
    return BookingOut(
        label=label,
        doc_id=booking.doc_id,
        shop=booking.shop,
        barber=booking.barber,
        location=booking.location,
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        customer_email=booking.customer_email,
        services_summary=services_summary(booking),
        service_details=booking.service_details or [],
        date=booking.date,
        start=booking.start,
        end=booking.end,
        duration=booking.duration,
        total=booking.total if booking.total is not None else 0,
        status=booking.effective_status,
        status_editable=booking.status != BookingStatus.returned.value,
        refund_status=booking.refund_status,
        refund_id=booking.refund_id,
        created_label=created_label(booking.created_at),
    )


def refund_amount(total) -> float:
    try:
        amount = float(total)
    except (TypeError, ValueError):
        return 0
    if amount != amount:  # NaN
        return 0
    return int(amount) if amount.is_integer() else amount


def _parse_snapshot(docs: Iterable[Document]) -> List[Booking]:
    parsed = []
    for doc in docs:
        try:
            parsed.append(Booking.from_document(doc.id, doc.data))
        except ValueError:
            logger.warning("Skipping malformed booking %s", doc.id, exc_info=True)
    return parsed


# --- Board --------------------------------------------------------------------

class BookingBoard:
    def __init__(
        self,
        store: DocumentStore,
        gateway: RefundGateway,
        admin: Optional[AdminProfile] = None,
        success_ttl: float = 3.0,
        error_ttl: float = 4.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._gateway = gateway
        self.admin = admin
        self._success_ttl = success_ttl
        self._error_ttl = error_ttl
        self._clock = clock

        self._bookings: List[Booking] = []
        self._loading = True
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.filter = ""
        self.status_filter = ALL
        self.shop_filter = ALL
        self._pending: Optional[PendingStatusChange] = None
        self._message = ""
        self._message_expires: Optional[float] = None

    # --- lifecycle ---

    def open(self) -> "BookingBoard":
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(BOOKINGS, self._on_snapshot, self._on_error)
        return self

    def close(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    def __enter__(self) -> "BookingBoard":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _on_snapshot(self, docs: List[Document]) -> None:
        self._bookings = sort_bookings(_parse_snapshot(docs))
        self._loading = False

    def _on_error(self, exc: Exception) -> None:
        # Keep the last known list
        logger.error("bookings listener error: %s", exc)
        self._loading = False

    # --- state ---

    @property
    def bookings(self) -> List[Booking]:
        return self._bookings

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def pending(self) -> Optional[PendingStatusChange]:
        return self._pending

    @property
    def status_message(self) -> str:
        if self._message_expires is not None and self._clock() >= self._message_expires:
            self._message = ""
            self._message_expires = None
        return self._message

    def _set_message(self, message: str, ttl: Optional[float]) -> None:
        self._message = message
        self._message_expires = None if ttl is None else self._clock() + ttl

    def set_filter(self, text: str) -> None:
        self.filter = text or ""

    def set_status_filter(self, status: str) -> None:
        self.status_filter = status or ALL

    def set_shop_filter(self, shop: str) -> None:
        self.shop_filter = shop or ALL

    # --- derived views ---

    def visible(self) -> List[Booking]:
        return [b for b in self._bookings if in_my_shops(b, self.admin)]

    def filtered(self) -> List[Booking]:
        return filter_bookings(self._bookings, self.admin, self.filter, self.status_filter, self.shop_filter)

    def get_visible(self, doc_id: str) -> Optional[Booking]:
        return next((b for b in self._bookings if b.doc_id == doc_id and in_my_shops(b, self.admin)), None)

    def view(self) -> BoardView:
        rows = self.filtered()
        assigned = None
        if not is_super_admin(self.admin) and self.admin and self.admin.categories:
            assigned = self.admin.categories[0]
        return BoardView(
            loading=self._loading,
            search=self.filter,
            status_filter=self.status_filter,
            shop_filter=self.shop_filter,
            shops=shop_options(self._bookings, self.admin),
            assigned_shop=assigned,
            pending=self._pending,
            status_message=self.status_message,
            bookings=[to_booking_out(b, f"Booking-{len(rows) - i}") for i, b in enumerate(rows)],
        )

    # --- status transitions ---

    def request_status_change(self, doc_id: str, new_status: str) -> PendingStatusChange:
        """Stage a change for confirmation; nothing is written yet."""
        if new_status not in SELECTABLE_STATUSES:
            raise BoardError("invalid_status", f"Unsupported status: {new_status}")
        booking = self.get_visible(doc_id)
        if booking is None:
            raise BoardError("not_found", "Booking not found")
        if booking.status == BookingStatus.returned.value:
            raise BoardError("locked", "Returned bookings can no longer change status")
        self._pending = PendingStatusChange(doc_id=doc_id, new_status=new_status)
        return self._pending

    def cancel_status_change(self) -> None:
        self._pending = None

    async def confirm_status_change(self) -> Result:
        # Taken before any await so a concurrent confirm finds nothing to apply
        pending, self._pending = self._pending, None
        if pending is None:
            return Failure("no_pending", "No status change to confirm")
        result = await self._apply(pending)

        if result.ok:
            self._set_message(result.message, self._success_ttl)
        else:
            logger.error("updateStatus error for %s: %s", pending.doc_id, result.error)
            self._set_message(f"Failed: {result.error}", self._error_ttl)
        return result

    async def _apply(self, pending: PendingStatusChange) -> Result:
        booking = next((b for b in self._bookings if b.doc_id == pending.doc_id), None)
        if booking is None:
            return Failure("not_found", "Booking not found")

        if pending.new_status != BookingStatus.returned.value:
            failure = await self._write(booking.doc_id, {"status": pending.new_status, "updatedAt": SERVER_TIMESTAMP})
            return failure or Success(pending.new_status, message=f'Booking updated to "{pending.new_status}"')

        payment_id = booking.payment_reference
        if not payment_id:
            failure = await self._write(booking.doc_id, {"refundStatus": RefundStatus.failed.value, "updatedAt": SERVER_TIMESTAMP})
            return failure or Failure("missing_payment", "No Razorpay payment ID found for this booking")

        self._set_message(PROCESSING_MESSAGE, None)
        refund = await self._gateway.refund(payment_id, refund_amount(booking.total))

        if not refund.ok:
            if refund.kind in ("rejected", "invalid_response"):
                failure = await self._write(booking.doc_id, {"refundStatus": RefundStatus.failed.value, "updatedAt": SERVER_TIMESTAMP})
                if failure:
                    return failure
            return refund

        outcome = refund.value
        fields = {
            "status": BookingStatus.returned.value,
            "refundStatus": outcome.refund_status,
            "updatedAt": SERVER_TIMESTAMP,
        }
        if not outcome.queued:
            fields["refundId"] = outcome.refund_id
        failure = await self._write(booking.doc_id, fields)
        return failure or Success(outcome, message=refund.message)

    async def _write(self, doc_id: str, fields: dict) -> Optional[Failure]:
        try:
            # Blocking Firestore call, kept off the event loop
            await run_in_threadpool(self._store.update_document, BOOKINGS, doc_id, fields)
        except Exception as exc:
            logger.exception("Booking write failed for %s", doc_id)
            return Failure("write_failed", str(exc) or "Booking update failed")
        return None


class BoardRegistry:
    """One live board per signed-in admin uid."""

    def __init__(self, store_factory: Callable[[], DocumentStore], gateway_factory: Callable[[], RefundGateway],
                 success_ttl: float = 3.0, error_ttl: float = 4.0):
        self._store_factory = store_factory
        self._gateway_factory = gateway_factory
        self._success_ttl = success_ttl
        self._error_ttl = error_ttl
        self._boards: Dict[str, BookingBoard] = {}
        self._lock = threading.Lock()

    def board_for(self, uid: str, admin: Optional[AdminProfile]) -> BookingBoard:
        with self._lock:
            board = self._boards.get(uid)
            if board is None:
                board = BookingBoard(
                    self._store_factory(),
                    self._gateway_factory(),
                    admin=admin,
                    success_ttl=self._success_ttl,
                    error_ttl=self._error_ttl,
                )
                self._boards[uid] = board.open()
        # Profile may have changed since the board was opened
        board.admin = admin
        return board

    def get(self, uid: str) -> Optional[BookingBoard]:
        return self._boards.get(uid)

    def rebind(self, uid: str, admin: Optional[AdminProfile]) -> None:
        board = self.get(uid)
        if board is not None:
            board.admin = admin

    def close(self, uid: str) -> None:
        with self._lock:
            board = self._boards.pop(uid, None)
        if board is not None:
            board.close()

    def close_all(self) -> None:
        with self._lock:
            boards, self._boards = list(self._boards.values()), {}
        for board in boards:
            board.close()

    def __len__(self) -> int:
        return len(self._boards)
