"""Unit tests for statement history and available credit"""

from datetime import date, datetime
from fatura_engine.domain.models import CyclePhase, StatusLabel
from fatura_engine.domain.scanner import available_credit, current_statements, scan_statements

# Closing on the 10th: the cycle open today is August 2024 (July 11 - August 10)
TODAY = date(2024, 7, 15)


def _cycles(summaries):
    return [(s.year, s.month) for s in summaries]


def test_card_without_expenses_has_no_history(memory_ledger, memory_card):
    assert scan_statements(memory_ledger(), memory_card, today=TODAY) == []


def test_skips_cycles_with_nothing_billed(memory_ledger, memory_card, make_expense):
    ledger = memory_ledger(
        expenses=[
            make_expense(memory_card, 1000, datetime(2024, 5, 1)),
            make_expense(memory_card, 2000, datetime(2024, 6, 1)),
            make_expense(memory_card, 3000, datetime(2024, 7, 20)),
        ]
    )

    summaries = scan_statements(ledger, memory_card, today=TODAY)

    assert _cycles(summaries) == [(2024, 8), (2024, 6), (2024, 5)]
    assert [s.billed_total_cents for s in summaries] == [3000, 2000, 1000]
    assert summaries[0].closing_date == date(2024, 8, 10)
    assert summaries[0].due_date == date(2024, 8, 20)
    assert summaries[0].status.phase == CyclePhase.CURRENT


def test_lookback_limits_history(memory_ledger, memory_card, make_expense):
    expenses = [make_expense(memory_card, 1000, datetime(2023, month, 1)) for month in range(1, 13)]
    expenses += [make_expense(memory_card, 1000, datetime(2024, month, 1)) for month in range(1, 9)]
    ledger = memory_ledger(expenses=expenses)

    summaries = scan_statements(ledger, memory_card, today=TODAY, lookback=12)

    assert len(summaries) == 12
    assert _cycles(summaries)[0] == (2024, 8)
    assert _cycles(summaries)[-1] == (2023, 9)

    assert len(scan_statements(ledger, memory_card, today=TODAY, lookback=3)) == 3


def test_overdue_history(memory_ledger, memory_card, make_expense, make_payment):
    ledger = memory_ledger(
        expenses=[make_expense(memory_card, 10000, datetime(2024, 5, 1))],
        payments=[make_payment(memory_card, 4000, datetime(2024, 5, 5))],
    )

    [summary] = scan_statements(ledger, memory_card, today=TODAY)

    assert summary.status.label == StatusLabel.OVERDUE
    assert summary.status.amount_cents == 6000
    assert summary.balance_cents == 6000


def test_include_future_lists_installment_cycles(memory_ledger, memory_card, make_expense):
    ledger = memory_ledger(
        expenses=[
            make_expense(memory_card, 1000, datetime(2024, 7, 1)),
            make_expense(memory_card, 1000, datetime(2024, 9, 1)),
            make_expense(memory_card, 1000, datetime(2024, 10, 1)),
        ]
    )

    assert _cycles(scan_statements(ledger, memory_card, today=TODAY)) == [(2024, 7)]

    summaries = scan_statements(ledger, memory_card, today=TODAY, include_future=True)

    assert _cycles(summaries) == [(2024, 10), (2024, 9), (2024, 7)]
    assert summaries[0].status.phase == CyclePhase.FUTURE
    assert summaries[0].status.label == StatusLabel.OPEN


def test_overpayment_carries_forward(memory_ledger, memory_card, make_expense, make_payment):
    """June overpaid by 500; the credit covers July and what is left reaches August"""
    ledger = memory_ledger(
        expenses=[
            make_expense(memory_card, 1000, datetime(2024, 6, 1)),
            make_expense(memory_card, 400, datetime(2024, 7, 1)),
            make_expense(memory_card, 50, datetime(2024, 7, 20)),
        ],
        payments=[make_payment(memory_card, 1500, datetime(2024, 6, 5))],
    )

    august, july, june = scan_statements(ledger, memory_card, today=TODAY)

    assert june.status.label == StatusLabel.CREDIT
    assert june.balance_cents == -500

    assert july.status.label == StatusLabel.CREDIT
    assert july.status.amount_cents == 100
    assert july.balance_cents == -100

    assert august.status.label == StatusLabel.CREDIT
    assert august.status.amount_cents == 50
    assert august.balance_cents == -50


def test_credit_from_before_lookback_is_seeded(memory_ledger, memory_card, make_expense, make_payment):
    ledger = memory_ledger(
        expenses=[
            make_expense(memory_card, 1000, datetime(2024, 6, 1)),
            make_expense(memory_card, 400, datetime(2024, 7, 1)),
        ],
        payments=[make_payment(memory_card, 1500, datetime(2024, 6, 5))],
    )

    # Only August and July are scanned; June's overpayment still reaches July
    july = scan_statements(ledger, memory_card, today=TODAY, lookback=2)[-1]

    assert (july.year, july.month) == (2024, 7)
    assert july.status.label == StatusLabel.CREDIT
    assert july.balance_cents == -100


def test_available_credit(memory_ledger, memory_card, make_expense, make_payment):
    """limit - current net - future installments + current paid"""
    ledger = memory_ledger(
        expenses=[
            make_expense(memory_card, 7000, datetime(2024, 7, 1)),  # previous cycle
            make_expense(memory_card, 20000, datetime(2024, 7, 12)),
            make_expense(memory_card, 10000, datetime(2024, 8, 12)),
            make_expense(memory_card, 30000, datetime(2024, 9, 1)),
        ],
        payments=[make_payment(memory_card, 5000, datetime(2024, 7, 14))],
    )

    assert available_credit(ledger, memory_card, today=TODAY) == 500_000 - 20000 - 40000 + 5000


def test_available_credit_for_unused_card(memory_ledger, memory_card):
    assert available_credit(memory_ledger(), memory_card, today=TODAY) == 500_000


def test_current_statements_include_unpaid_previous_cycle(memory_ledger, memory_card, make_expense):
    ledger = memory_ledger(expenses=[make_expense(memory_card, 10000, datetime(2024, 7, 1))])

    statements = current_statements(ledger, memory_card, today=TODAY)

    assert [(s.year, s.month) for s in statements] == [(2024, 8), (2024, 7)]
    assert statements[1].status.label == StatusLabel.OPEN
    assert statements[1].status.phase == CyclePhase.CLOSED


def test_current_statements_drop_paid_previous_cycle(memory_ledger, memory_card, make_expense, make_payment):
    ledger = memory_ledger(
        expenses=[make_expense(memory_card, 10000, datetime(2024, 7, 1))],
        payments=[make_payment(memory_card, 10000, datetime(2024, 7, 5))],
    )

    statements = current_statements(ledger, memory_card, today=TODAY)

    assert [(s.year, s.month) for s in statements] == [(2024, 8)]


def test_archived_card_is_left_off_dashboard(memory_ledger, memory_card, make_expense):
    ledger = memory_ledger(expenses=[make_expense(memory_card, 10000, datetime(2024, 7, 1))])
    memory_card.is_archived = True

    assert current_statements(ledger, memory_card, today=TODAY) == []
    # History stays reachable for archived cards
    assert _cycles(scan_statements(ledger, memory_card, today=TODAY)) == [(2024, 7)]
