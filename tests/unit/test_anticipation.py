"""Unit tests for installment anticipation"""

import copy
import pytest
from datetime import datetime
from fatura_engine.domain.anticipation import anticipate_installments
from fatura_engine.domain.exceptions import AnticipationCommitError, InvalidAnticipationError
from fatura_engine.domain.installments import generate_installments


@pytest.fixture
def purchase(memory_card):
    """R$500 in 5x of R$100 starting July 5"""
    return generate_installments(50000, 5, datetime(2024, 7, 5, 15, 0), memory_card, "Notebook", "Eletrônicos")


@pytest.fixture
def store(memory_ledger, purchase):
    return memory_ledger(expenses=purchase)


def test_anticipate_two_installments(store, purchase):
    """Current + 2 selected collapse into one R$550 expense; the other 2 stay"""
    current, second, third, fourth, fifth = purchase

    result = anticipate_installments(store, current, [second.id, third.id], 55000)

    assert result.applied
    assert result.deleted_ids == [current.id, second.id, third.id]
    assert result.original_total_cents == 30000
    assert result.discount_cents == -25000

    new_expense = result.new_expense
    assert new_expense.amount_cents == 55000
    assert new_expense.date == current.date
    assert new_expense.card_id == current.card_id
    assert new_expense.payment_method == current.payment_method
    assert new_expense.main_category == "Eletrônicos"
    assert new_expense.installments == 1
    assert new_expense.original_expense_id is None

    remaining = {e.id for e in store.expenses}
    assert remaining == {fourth.id, fifth.id, new_expense.id}


def test_discount_is_original_minus_new_total(store, purchase):
    current, second, third, fourth, fifth = purchase

    result = anticipate_installments(store, current, [second.id, third.id, fourth.id, fifth.id], 45000)

    assert result.original_total_cents == 50000
    assert result.discount_cents == 5000
    assert len(store.expenses) == 1


def test_description_drops_installment_counter(store, purchase):
    current, second = purchase[:2]

    result = anticipate_installments(store, current, [second.id], 19000, "Antecipação de parcelas")

    assert current.description == "Notebook (1/5)"
    assert result.new_expense.description == "Antecipação de parcelas: Notebook"


def test_empty_selection_changes_nothing(store, purchase):
    before = copy.deepcopy(store.expenses)

    result = anticipate_installments(store, purchase[0], [], 10000)

    assert not result.applied
    assert result.deleted_ids == []
    assert result.new_expense is None
    assert store.expenses == before


def test_failed_commit_leaves_every_record(store, purchase):
    before = copy.deepcopy(store.expenses)
    store.fail_commit = True

    with pytest.raises(AnticipationCommitError):
        anticipate_installments(store, purchase[0], [purchase[1].id, purchase[2].id], 25000)

    assert store.expenses == before


def test_unknown_installment_is_rejected(store, purchase):
    before = copy.deepcopy(store.expenses)

    with pytest.raises(InvalidAnticipationError):
        anticipate_installments(store, purchase[0], [purchase[1].id, "not-an-installment"], 25000)

    assert store.expenses == before


def test_past_installment_cannot_be_selected(store, purchase):
    """Only siblings dated after the current installment are eligible"""
    with pytest.raises(InvalidAnticipationError):
        anticipate_installments(store, purchase[2], [purchase[0].id], 25000)


def test_duplicate_ids_are_counted_once(store, purchase):
    result = anticipate_installments(store, purchase[0], [purchase[1].id, purchase[1].id], 19000)

    assert result.deleted_ids == [purchase[0].id, purchase[1].id]
    assert result.original_total_cents == 20000


def test_plain_expense_cannot_be_anticipated(memory_ledger, memory_card, make_expense):
    expense = make_expense(memory_card, 10000, datetime(2024, 7, 5))
    store = memory_ledger(expenses=[expense])

    with pytest.raises(InvalidAnticipationError):
        anticipate_installments(store, expense, ["whatever"], 9000)


def test_new_total_must_be_positive(store, purchase):
    with pytest.raises(InvalidAnticipationError):
        anticipate_installments(store, purchase[0], [purchase[1].id], 0)
