"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from fatura_engine.config import settings
from fatura_engine.domain.models import AnticipationResult, Statement


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_statement(request_id: str, statement: Statement, duration_ms: float) -> None:
    """Log statement computation for analysis"""
    logging.info(
        "Statement computed",
        extra={
            "request_id": request_id,
            "card_id": statement.card_id,
            "cycle": f"{statement.year}-{statement.month:02d}",
            "step": "statement_complete",
            "status": statement.status.label.value,
            "billed_total_cents": statement.billed_total_cents,
            "paid_total_cents": statement.paid_total_cents,
            "duration_ms": duration_ms,
        },
    )


def log_anticipation(request_id: str, expense_id: str, result: AnticipationResult) -> None:
    """Log anticipation outcome; discount may be negative when the new total is higher"""
    logging.info(
        "Installments anticipated" if result.applied else "Anticipation skipped: no installments selected",
        extra={
            "request_id": request_id,
            "expense_id": expense_id,
            "step": "anticipation_complete",
            "deleted_count": len(result.deleted_ids),
            "new_expense_id": result.new_expense.id if result.new_expense else None,
            "original_total_cents": result.original_total_cents,
            "discount_cents": result.discount_cents,
        },
    )
