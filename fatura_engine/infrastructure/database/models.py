"""SQLAlchemy ORM models for cards, expenses and bill payments"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, ForeignKey, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class CardRecord(Base):
    """Credit card configuration"""

    __tablename__ = "card"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    profile = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    limit_cents = Column(BigInteger, nullable=False, default=0)
    closing_day = Column(Integer, nullable=True)
    due_day = Column(Integer, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ExpenseRecord(Base):
    """Expense; one row per installment of a purchase"""

    __tablename__ = "expense"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    profile = Column(Text, nullable=False)
    card_id = Column(String(36), ForeignKey("card.id", ondelete="SET NULL"), nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    main_category = Column(Text, nullable=True)
    subcategory = Column(Text, nullable=True)
    # Display snapshot ("Cartão: <name>"); card_id is the association
    payment_method = Column(Text, nullable=False)
    installments = Column(Integer, nullable=False, default=1)
    current_installment = Column(Integer, nullable=False, default=1)
    original_expense_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BillPaymentRecord(Base):
    """Payment or refund applied to a card"""

    __tablename__ = "bill_payment"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    profile = Column(Text, nullable=False)
    card_id = Column(String(36), ForeignKey("card.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    type = Column(Text, nullable=False)  # payment | refund
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
