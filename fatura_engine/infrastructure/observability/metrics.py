"""Prometheus metrics for statement computation and anticipation outcomes"""

from prometheus_client import Counter, Histogram

from fatura_engine.domain.models import AnticipationResult, Statement

# Statement metrics
statement_counter = Counter(
    "fatura_statement_total",
    "Statements computed",
    ["status"],  # open | paid | credit | overdue
)

statement_duration_histogram = Histogram(
    "fatura_statement_duration_seconds",
    "Time to load and compute statements",
    ["view"],  # statement | history | current | available_credit
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

statement_load_failures_counter = Counter(
    "fatura_statement_load_failures_total",
    "Statement queries that failed against the record store",
)

# Anticipation metrics
anticipation_counter = Counter(
    "fatura_anticipation_total",
    "Installment anticipation attempts",
    ["outcome"],  # applied | noop | rejected | failed
)

anticipation_installments_histogram = Histogram(
    "fatura_anticipation_installments",
    "Installments collapsed per applied anticipation",
    buckets=[2, 3, 4, 6, 8, 12, 24],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_statement(statement: Statement) -> None:
    statement_counter.labels(status=statement.status.label.value).inc()


def record_anticipation(outcome: str, result: AnticipationResult | None = None) -> None:
    """Record anticipation outcome; applied results also record batch size"""
    anticipation_counter.labels(outcome=outcome).inc()
    if result is not None and result.applied:
        anticipation_installments_histogram.observe(len(result.deleted_ids))
