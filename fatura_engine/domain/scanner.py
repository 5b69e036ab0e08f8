"""Statement history and available credit for a card"""

from datetime import date
from typing import List, Optional, Tuple

from fatura_engine.domain.models import Card, Statement, StatementSummary
from fatura_engine.domain.periods import current_cycle, cycle_for_date
from fatura_engine.domain.statements import StatementSource, load_statement
from fatura_engine.utils.date_utils import shift_month

DEFAULT_LOOKBACK_CYCLES = 12


def _cycles_to_scan(
    current: Tuple[int, int],
    earliest: Tuple[int, int],
    latest: Tuple[int, int],
    lookback: int,
    include_future: bool,
) -> List[Tuple[int, int]]:
    """Cycles to visit, most recent first"""
    cycles = []

    if include_future:
        cycle = latest
        while cycle > current:
            cycles.append(cycle)
            cycle = shift_month(*cycle, -1)

    cycle = current
    for _ in range(lookback):
        if cycle < earliest:
            break
        cycles.append(cycle)
        cycle = shift_month(*cycle, -1)

    return cycles


def scan_statements(
    source: StatementSource,
    card: Card,
    today: Optional[date] = None,
    lookback: int = DEFAULT_LOOKBACK_CYCLES,
    include_future: bool = False,
) -> List[StatementSummary]:
    """
    Statement-picker list for a card, most recent first.

    Walks back one cycle at a time from the cycle open today, stopping at the
    cycle of the card's earliest expense or after `lookback` cycles. Cycles
    with nothing billed are left out. With include_future, cycles holding
    future installments are listed ahead of the current one.

    Overpayment rolls forward: credit left in one cycle counts as paid in the
    next when classifying it and computing its balance.
    """
    today = today or date.today()

    bounds = source.expense_date_bounds(card)
    if bounds is None:
        return []

    cycles = _cycles_to_scan(
        current=current_cycle(today, card.closing_day),
        earliest=cycle_for_date(bounds[0], card.closing_day),
        latest=cycle_for_date(bounds[1], card.closing_day),
        lookback=lookback,
        include_future=include_future,
    )
    if not cycles:
        return []

    # Seed the carried credit from the cycle just before the oldest one scanned
    before = load_statement(source, card, *shift_month(*cycles[-1], -1), today=today)
    carried = max(0, -before.outstanding_cents)

    summaries = []
    for year, month in reversed(cycles):
        statement = load_statement(source, card, year, month, today=today, carried_credit_cents=carried)
        balance = statement.outstanding_cents - carried
        carried = max(0, -balance)

        if statement.billed_total_cents == 0:
            continue

        summaries.append(
            StatementSummary(
                year=year,
                month=month,
                status=statement.status,
                billed_total_cents=statement.billed_total_cents,
                balance_cents=balance,
                closing_date=statement.period.closing_date.date(),
                due_date=statement.period.due_date.date(),
            )
        )

    summaries.reverse()
    return summaries


def available_credit(source: StatementSource, card: Card, today: Optional[date] = None) -> int:
    """
    limit - current cycle net billed - future installments + current cycle paid

    Future installments are card expenses dated after the current cycle's
    closing date, already committed against the limit but not yet billed.
    """
    today = today or date.today()
    statement = load_statement(source, card, *current_cycle(today, card.closing_day), today=today)
    future = source.expenses_after(card, statement.cycle_end)
    future_cents = sum(e.amount_cents for e in future)

    return card.limit_cents - statement.net_total_cents - future_cents + statement.paid_total_cents


def current_statements(source: StatementSource, card: Card, today: Optional[date] = None) -> List[Statement]:
    """
    Dashboard view: the cycle open today, then the previous cycle while it
    still has an unpaid balance. Archived cards are left off the dashboard.
    """
    if card.is_archived:
        return []

    today = today or date.today()
    year, month = current_cycle(today, card.closing_day)

    statements = [load_statement(source, card, year, month, today=today)]
    previous = load_statement(source, card, *shift_month(year, month, -1), today=today)
    if previous.net_total_cents > 0 and previous.outstanding_cents > 0:
        statements.append(previous)

    return statements
