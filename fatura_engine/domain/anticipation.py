"""Installment anticipation - collapse future installments into one expense"""

import re
import uuid
from typing import List, Protocol, Sequence

from fatura_engine.domain.exceptions import InvalidAnticipationError
from fatura_engine.domain.models import AnticipationResult, Expense

DEFAULT_DESCRIPTION_PREFIX = "Antecipação de parcelas"

_INSTALLMENT_SUFFIX = re.compile(r"\s\(\d+/\d+\)")


class ExpenseStore(Protocol):
    def future_installments(self, expense: Expense) -> List[Expense]:
        """Siblings sharing original_expense_id dated strictly after `expense`"""
        ...

    def replace_expenses(self, delete_ids: Sequence[str], replacement: Expense) -> Expense:
        """
        Delete `delete_ids` and insert `replacement` in one transaction.

        Raises:
            AnticipationCommitError: nothing was changed
        """
        ...


def anticipate_installments(
    store: ExpenseStore,
    current: Expense,
    selected_ids: Sequence[str],
    new_total_cents: int,
    description_prefix: str = DEFAULT_DESCRIPTION_PREFIX,
) -> AnticipationResult:
    """
    Replace the current installment and the selected future ones with a
    single standalone expense of `new_total_cents`.

    Flow:
    1. Validate the selection against the stored future siblings
    2. Build the replacement dated at the current installment's date, keeping
       its category and payment method but no installment linkage
    3. Delete current + selected and insert the replacement atomically

    An empty selection changes nothing and returns applied=False. The
    discount is the original total (current + selected) minus the new total.

    Raises:
        InvalidAnticipationError: bad amount, not an installment, or a
            selected id that is not a future sibling
        AnticipationCommitError: the batch failed; no record was changed
    """
    if not selected_ids:
        return AnticipationResult(applied=False)

    if new_total_cents <= 0:
        raise InvalidAnticipationError("New total must be positive")
    if not current.is_installment:
        raise InvalidAnticipationError(f"Expense {current.id} is not part of an installment purchase")

    siblings = {e.id: e for e in store.future_installments(current)}
    unique_ids = list(dict.fromkeys(selected_ids))
    unknown = [i for i in unique_ids if i not in siblings]
    if unknown:
        raise InvalidAnticipationError(f"Not future installments of {current.id}: {', '.join(unknown)}")

    selected = [siblings[i] for i in unique_ids]
    original_total = current.amount_cents + sum(e.amount_cents for e in selected)
    base_description = _INSTALLMENT_SUFFIX.sub("", current.description)

    replacement = Expense(
        id=str(uuid.uuid4()),
        amount_cents=new_total_cents,
        date=current.date,
        payment_method=current.payment_method,
        card_id=current.card_id,
        description=f"{description_prefix}: {base_description}",
        main_category=current.main_category,
        subcategory=current.subcategory,
        user_id=current.user_id,
        profile=current.profile,
    )

    delete_ids = [current.id] + unique_ids
    saved = store.replace_expenses(delete_ids, replacement)

    return AnticipationResult(
        applied=True,
        deleted_ids=delete_ids,
        new_expense=saved,
        original_total_cents=original_total,
        discount_cents=original_total - new_total_cents,
    )
