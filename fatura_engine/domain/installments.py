"""Installment plan generation for card purchases"""

import uuid
from datetime import datetime
from typing import List, Optional

from fatura_engine.domain.models import Card, Expense
from fatura_engine.utils.date_utils import add_months

DEFAULT_PAYMENT_METHOD_PREFIX = "Cartão: "


def card_payment_method(card: Card, prefix: str = DEFAULT_PAYMENT_METHOD_PREFIX) -> str:
    """Display label stored on expenses paid with `card`"""
    return f"{prefix}{card.name}"


def generate_installments(
    amount_cents: int,
    installments: int,
    first_date: datetime,
    card: Card,
    description: str = "",
    main_category: Optional[str] = None,
    subcategory: Optional[str] = None,
) -> List[Expense]:
    """
    Split a card purchase into monthly installment expenses.

    Requirements:
    - One expense per month, same day of month (clamped to month end)
    - Equal split; last installment absorbs the rounding remainder
    - All installments share one original_expense_id when there is more than one

    Example:
        R$100.01 in 3x → [33.33, 33.33, 33.35]
        10001 cents / 3 = 3333 base, remainder 2
    """
    if amount_cents <= 0 or installments < 1:
        return []

    base_amount = amount_cents // installments
    remainder = amount_cents % installments
    original_expense_id = str(uuid.uuid4()) if installments > 1 else None
    label = description or "Compra parcelada"

    expenses = []
    for i in range(installments):
        amount = base_amount + (remainder if i == installments - 1 else 0)

        expenses.append(
            Expense(
                id=str(uuid.uuid4()),
                amount_cents=amount,
                date=add_months(first_date, i),
                payment_method=card_payment_method(card),
                card_id=card.id,
                description=f"{label} ({i + 1}/{installments})" if installments > 1 else description,
                main_category=main_category,
                subcategory=subcategory,
                installments=installments,
                current_installment=i + 1,
                original_expense_id=original_expense_id,
                user_id=card.user_id,
                profile=card.profile,
            )
        )

    return expenses
