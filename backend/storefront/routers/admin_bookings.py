"""
# `storefront/routers/admin_bookings.py` — Admin booking management

Every admin gets a live booking board (see `services/booking_board.py`) that
follows the `bookings` collection in real time. Scoped admins only see the
bookings of their assigned shop; superadmins see all shops and can filter by shop.

Status changes are two-step, like the confirmation popup of the admin screen:

1. `POST /admin/bookings/{doc_id}/status` stages the change;
2. `POST /admin/bookings/pending-status/confirm` applies it
   (`DELETE /admin/bookings/pending-status` drops it).

Moving a booking to `Returned` refunds the payment first.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Query, status

from storefront.core.errors import BoardError
from storefront.core.security import get_board_registry, get_current_admin
from storefront.schemas.booking import BoardView, BookingOut, PendingStatusChange, StatusChangeOut
from storefront.services.booking_board import BoardRegistry, BookingBoard, to_booking_out
from storefront.services.session import Session

admin_router = APIRouter(prefix="/bookings", tags=["Admin Bookings"])

_BOARD_ERROR_STATUS = {
    "invalid_status": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "locked": status.HTTP_409_CONFLICT,
}

_CONFIRM_FAILURE_STATUS = {
    "no_pending": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "missing_payment": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "rejected": status.HTTP_502_BAD_GATEWAY,
    "invalid_response": status.HTTP_502_BAD_GATEWAY,
    "transport": status.HTTP_504_GATEWAY_TIMEOUT,
    "not_configured": status.HTTP_503_SERVICE_UNAVAILABLE,
    "write_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_admin_board(
    session: Session = Depends(get_current_admin),
    boards: BoardRegistry = Depends(get_board_registry),
) -> BookingBoard:
    return boards.board_for(session.user.uid, session.admin)


@admin_router.get("/", response_model=BoardView)
def list_bookings(
    search: Optional[str] = Query(None, description="Customer name, phone or e-mail"),
    status_filter: Optional[str] = Query(None, alias="status", description="'all' or an exact status"),
    shop: Optional[str] = Query(None, description="'all' or a shop name (superadmin only)"),
    board: BookingBoard = Depends(get_admin_board),
):
    """
    Current board view. Given query parameters update the caller's filters;
    omitted ones keep their previous value.
    """
    if search is not None:
        board.set_filter(search)
    if status_filter is not None:
        board.set_status_filter(status_filter)
    if shop is not None:
        board.set_shop_filter(shop)
    return board.view()


@admin_router.get("/{doc_id}", response_model=BookingOut)
def get_booking(doc_id: str, board: BookingBoard = Depends(get_admin_board)):
    booking = board.get_visible(doc_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return to_booking_out(booking, label=doc_id)


@admin_router.post("/{doc_id}/status", response_model=PendingStatusChange)
def request_status_change(
    doc_id: str,
    status_value: str = Form(..., alias="status"),
    board: BookingBoard = Depends(get_admin_board),
):
    """Stage a status change; nothing is written until it is confirmed."""
    try:
        return board.request_status_change(doc_id, status_value)
    except BoardError as exc:
        raise HTTPException(status_code=_BOARD_ERROR_STATUS.get(exc.code, 400), detail=exc.message)


@admin_router.post("/pending-status/confirm", response_model=StatusChangeOut)
async def confirm_status_change(board: BookingBoard = Depends(get_admin_board)):
    result = await board.confirm_status_change()
    if not result.ok:
        raise HTTPException(
            status_code=_CONFIRM_FAILURE_STATUS.get(result.kind, status.HTTP_400_BAD_REQUEST),
            detail={"ok": False, "kind": result.kind, "message": result.error},
        )
    return StatusChangeOut(ok=True, message=result.message)


@admin_router.delete("/pending-status", response_model=StatusChangeOut)
def cancel_status_change(board: BookingBoard = Depends(get_admin_board)):
    board.cancel_status_change()
    return StatusChangeOut(ok=True, message="Status change cancelled")
