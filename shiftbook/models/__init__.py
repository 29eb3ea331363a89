from shiftbook.models.shift import (
    Shift, ShiftRole, ShiftStatus, TransferState, ROLE_ORDER
)
from shiftbook.models.cash_drawer_session import CashDrawerSession
from shiftbook.models.expense import ShiftExpense, ExpenseStatus, ExpenseType
from shiftbook.models.staff_payment import StaffPayment, StaffPaymentType
from shiftbook.models.order import (
    Order, OrderItem, OrderStatus, OrderType, PaymentMethod,
    SETTLED_ORDER_STATUSES, TERMINAL_ORDER_STATUSES
)
from shiftbook.models.driver_earning import (
    DriverEarning, DeliverySnapshot, DeliveryStatus
)
from shiftbook.models.table import RestaurantTable, TableStatus
from shiftbook.models.table_session import TableSession, TableSessionStatus
from shiftbook.models.sync_queue import SyncQueueItem, SyncOperation, SyncStatus
