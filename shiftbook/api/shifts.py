"""
Shift API endpoints
Handles check-in/check-out, expenses, cash drops, staff payments and driver earnings
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import uuid

from shiftbook.core.dependencies import get_services
from shiftbook.models import Shift
from shiftbook.schemas.summary import ShiftSummary
from shiftbook.services import Services
from shiftbook.api.schemas import (
    ShiftOpen, ShiftClose, ShiftAbandon, ShiftRead, ShiftCloseRead,
    ActiveDriverRead, CashDropCreate, DrawerReconcile, DrawerRead,
    ExpenseCreate, ExpenseRead, StaffPaymentCreate, StaffPaymentRead,
    DriverEarningCreate, DriverEarningRead,
)

router = APIRouter()


def to_shift_read(shift: Shift) -> ShiftRead:
    return ShiftRead.model_validate(shift, from_attributes=True)


@router.post("/open", response_model=ShiftRead, status_code=status.HTTP_201_CREATED)
def open_shift(shift_data: ShiftOpen, services: Services = Depends(get_services)):
    """Open a new shift"""
    shift = services.shifts.open_shift(
        staff_id=shift_data.staff_id,
        branch_id=shift_data.branch_id,
        terminal_id=shift_data.terminal_id,
        role=shift_data.role,
        opening_amount=shift_data.opening_amount,
        staff_name=shift_data.staff_name,
        opened_by=shift_data.opened_by,
    )
    return to_shift_read(shift)


@router.get("/active", response_model=ShiftRead)
def get_active_shift(staff_id: str, services: Services = Depends(get_services)):
    """Get the active shift of a staff member"""
    shift = services.shifts.get_active_shift(staff_id)
    if shift is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active shift for this staff member"
        )
    return to_shift_read(shift)


@router.get("/drivers/active", response_model=List[ActiveDriverRead])
def list_active_drivers(
    branch_id: str,
    terminal_id: str,
    services: Services = Depends(get_services),
):
    """List active drivers on a terminal"""
    drivers = services.transfers.list_active_drivers(branch_id, terminal_id)
    return [ActiveDriverRead.model_validate(driver, from_attributes=True) for driver in drivers]


@router.get("/{shift_id}", response_model=ShiftRead)
def get_shift(shift_id: uuid.UUID, services: Services = Depends(get_services)):
    return to_shift_read(services.shifts.get_shift(shift_id))


@router.get("/{shift_id}/summary", response_model=ShiftSummary)
def get_shift_summary(shift_id: uuid.UUID, services: Services = Depends(get_services)):
    """Checkout summary for a shift"""
    return services.summaries.get_shift_summary(shift_id)


@router.post("/{shift_id}/close", response_model=ShiftCloseRead)
def close_shift(
    shift_id: uuid.UUID,
    close_data: ShiftClose,
    services: Services = Depends(get_services),
):
    """Close a shift and compute its variance"""
    closed = services.shifts.close_shift(
        shift_id,
        closing_cash=close_data.closing_cash,
        closed_by=close_data.closed_by,
        payment_amount=close_data.payment_amount,
    )
    return ShiftCloseRead(
        shift=to_shift_read(closed.shift),
        expected=closed.result.expected,
        variance=closed.result.variance,
        variance_description=closed.shift.get_variance_description(),
        transferred_driver_ids=[driver.id for driver in closed.transferred_drivers],
        returned_to_drawer_id=closed.returned_to_drawer.id if closed.returned_to_drawer else None,
    )


@router.post("/{shift_id}/abandon", response_model=ShiftRead)
def abandon_shift(
    shift_id: uuid.UUID,
    abandon_data: ShiftAbandon,
    services: Services = Depends(get_services),
):
    shift = services.shifts.abandon_shift(
        shift_id, closed_by=abandon_data.closed_by, reason=abandon_data.reason
    )
    return to_shift_read(shift)


@router.post("/{shift_id}/expenses", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
def record_expense(
    shift_id: uuid.UUID,
    expense_data: ExpenseCreate,
    services: Services = Depends(get_services),
):
    """Record an expense paid from the shift's cash"""
    return services.expenses.record_expense(
        shift_id,
        expense_type=expense_data.expense_type,
        amount=expense_data.amount,
        description=expense_data.description,
        receipt_number=expense_data.receipt_number,
    )


@router.get("/{shift_id}/expenses", response_model=List[ExpenseRead])
def list_expenses(shift_id: uuid.UUID, services: Services = Depends(get_services)):
    return services.expenses.list_expenses(shift_id)


@router.post("/{shift_id}/cash-drops", response_model=DrawerRead)
def record_cash_drop(
    shift_id: uuid.UUID,
    drop_data: CashDropCreate,
    services: Services = Depends(get_services),
):
    """Record a cash drop from the cashier's drawer"""
    return services.drawers.record_cash_drop(shift_id, drop_data.amount, drop_data.reason)


@router.post("/{shift_id}/reconcile", response_model=DrawerRead)
def reconcile_drawer(
    shift_id: uuid.UUID,
    reconcile_data: DrawerReconcile,
    services: Services = Depends(get_services),
):
    """Mark a closed cashier drawer as reconciled"""
    return services.drawers.reconcile_drawer(
        shift_id, reconcile_data.reconciled_by, reconcile_data.notes
    )


@router.post(
    "/{shift_id}/staff-payments",
    response_model=StaffPaymentRead,
    status_code=status.HTTP_201_CREATED,
)
def record_staff_payment(
    shift_id: uuid.UUID,
    payment_data: StaffPaymentCreate,
    services: Services = Depends(get_services),
):
    """Pay a staff member from the cashier's drawer"""
    return services.expenses.record_staff_payment(
        shift_id,
        paid_to_staff_id=payment_data.paid_to_staff_id,
        amount=payment_data.amount,
        payment_type=payment_data.payment_type,
        notes=payment_data.notes,
    )


@router.post(
    "/{shift_id}/driver-earnings",
    response_model=DriverEarningRead,
    status_code=status.HTTP_201_CREATED,
)
def record_driver_earning(
    shift_id: uuid.UUID,
    earning_data: DriverEarningCreate,
    services: Services = Depends(get_services),
):
    """Record a delivery on a driver shift"""
    return services.earnings.record_driver_earning(
        shift_id,
        order_id=earning_data.order_id,
        delivery_fee=earning_data.delivery_fee,
        tip_amount=earning_data.tip_amount,
        payment_method=earning_data.payment_method,
        cash_collected=earning_data.cash_collected,
        card_amount=earning_data.card_amount,
        status=earning_data.status,
        address=earning_data.address,
    )
