"""
Driver earnings - per-order fee, tip and cash split for driver shifts
"""

from typing import List, Optional, Union
import uuid

from sqlmodel import Session, select
import structlog

from shiftbook.core.clock import Clock, utcnow
from shiftbook.core.database import atomic
from shiftbook.core.errors import DuplicateEarning, NotFound, ShiftNotActive, ValidationError
from shiftbook.core.money import Number, require_non_negative
from shiftbook.models.driver_earning import DeliverySnapshot, DeliveryStatus, DriverEarning
from shiftbook.models.order import Order, PaymentMethod
from shiftbook.models.shift import Shift, ShiftRole, TransferState
from shiftbook.services.sync_queue import SyncQueue

logger = structlog.get_logger(__name__)


class DriverEarningLedger:

    def __init__(self, session: Session, sync: SyncQueue, clock: Clock = utcnow):
        self.session = session
        self.sync = sync
        self.clock = clock

    def record_driver_earning(
        self,
        driver_shift_id: uuid.UUID,
        order_id: uuid.UUID,
        delivery_fee: Number = 0,
        tip_amount: Number = 0,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
        cash_collected: Number = 0,
        card_amount: Number = 0,
        status: Union[DeliveryStatus, str] = DeliveryStatus.COMPLETED,
        address: Optional[str] = None,
    ) -> DriverEarning:
        try:
            payment_method = PaymentMethod(payment_method)
            status = DeliveryStatus(status)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        fee = require_non_negative(delivery_fee, "delivery_fee")
        tip = require_non_negative(tip_amount, "tip_amount")
        collected = require_non_negative(cash_collected, "cash_collected")
        card = require_non_negative(card_amount, "card_amount")

        with atomic(self.session):
            shift = self.session.get(Shift, driver_shift_id)
            if shift is None or shift.role != ShiftRole.DRIVER or not shift.is_active():
                raise ShiftNotActive("Driver shift is not active")

            existing = self.session.exec(
                select(DriverEarning.id).where(DriverEarning.order_id == order_id)
            ).first()
            if existing is not None:
                raise DuplicateEarning("Earning already recorded for this order")

            order = self.session.get(Order, order_id)
            if order is None:
                raise NotFound("Order not found")

            now = self.clock()
            earning = DriverEarning(
                staff_shift_id=shift.id,
                driver_id=shift.staff_id,
                branch_id=shift.branch_id,
                order_id=order.id,
                delivery_fee=fee,
                tip_amount=tip,
                total_earning=fee + tip,
                payment_method=payment_method,
                cash_collected=collected,
                card_amount=card,
                cash_to_return=collected - card,
                status=status,
                is_transferred=shift.transfer_state != TransferState.ATTACHED,
                created_at=now,
                updated_at=now,
            )
            earning.set_order_details(
                DeliverySnapshot(
                    order_number=order.order_number,
                    order_type=order.order_type,
                    total_amount=order.total_amount,
                    status=order.status,
                    address=address,
                )
            )
            if order.driver_shift_id is None:
                order.driver_shift_id = shift.id
                order.updated_at = now
                self.session.add(order)
                self.sync.record_update("orders", order)
            self.session.add(earning)
            self.sync.record_insert("driver_earnings", earning)

        logger.info(
            "driver_earning_recorded",
            earning_id=str(earning.id),
            shift_id=str(driver_shift_id),
            order_id=str(order_id),
            cash_collected=str(collected),
        )
        return earning

    def list_for_shift(self, driver_shift_id: uuid.UUID) -> List[DriverEarning]:
        statement = (
            select(DriverEarning)
            .where(DriverEarning.staff_shift_id == driver_shift_id)
            .order_by(DriverEarning.created_at)
        )
        return list(self.session.exec(statement).all())
