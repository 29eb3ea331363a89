"""
Expense review endpoints
"""

from fastapi import APIRouter, Depends
import uuid

from shiftbook.core.dependencies import get_services
from shiftbook.services import Services
from shiftbook.api.schemas import ExpenseRead, ExpenseReview

router = APIRouter()


@router.post("/{expense_id}/approve", response_model=ExpenseRead)
def approve_expense(
    expense_id: uuid.UUID,
    review: ExpenseReview,
    services: Services = Depends(get_services),
):
    return services.expenses.approve_expense(expense_id, review.actor)


@router.post("/{expense_id}/reject", response_model=ExpenseRead)
def reject_expense(
    expense_id: uuid.UUID,
    review: ExpenseReview,
    services: Services = Depends(get_services),
):
    return services.expenses.reject_expense(expense_id, review.actor)
