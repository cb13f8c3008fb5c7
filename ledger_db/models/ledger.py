from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    true,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Directory: categories, subcategories, payment methods
# ---------------------------


class LedgerCategory(Base):
    __tablename__ = "ledger_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Which flows the category applies to; "both" shows for inflows and outflows.
    flow_kind: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'both'"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "flow_kind in ('inflow','outflow','both')",
            name="ck_ledger_category_flow_kind",
        ),
    )


class LedgerSubcategory(Base):
    __tablename__ = "ledger_subcategories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Subcategories are scoped to exactly one category.
    category_id: Mapped[str] = mapped_column(
        String, ForeignKey("ledger_categories.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())


class LedgerPaymentMethod(Base):
    __tablename__ = "ledger_payment_methods"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Free-form kind label, e.g. "pix", "credit", "debit", "cash", "transfer".
    kind: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'other'"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())


# ---------------------------
# Core: ledger_transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    account_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Content fingerprint (date-with-time, description, amount). Source-provided
    # identifiers are kept in ``external_reference`` and never used for identity.
    fingerprint_sha256: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    external_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    occurred_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    flow: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    category_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("ledger_categories.id"), nullable=True
    )
    subcategory_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("ledger_subcategories.id"), nullable=True
    )
    payment_method_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("ledger_payment_methods.id"), nullable=True
    )
    source_template: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("account_id", "fingerprint_sha256", name="uq_ledger_tx_account_fp"),
        CheckConstraint("flow in ('inflow','outflow')", name="ck_ledger_tx_flow"),
        CheckConstraint("amount >= 0", name="ck_ledger_tx_amount_non_negative"),
    )


__all__ = [
    "Base",
    "LedgerCategory",
    "LedgerSubcategory",
    "LedgerPaymentMethod",
    "LedgerTransaction",
]
