from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: subscriptions
# ---------------------------


class Subscription(Base):
    __tablename__ = "subscriptions"

    # BigInteger on Postgres; SQLite needs INTEGER for rowid autoincrement.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    merchant_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Output of ``normalize_merchant_name``; one row per user and merchant.
    normalized_merchant: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    frequency: Mapped[str] = mapped_column(String, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    last_charge_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_expected_charge: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_equivalent: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    transaction_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    # Set by the user; detection never clears it.
    is_false_positive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "normalized_merchant", name="uq_subscriptions_user_merchant"),
        CheckConstraint(
            "frequency in ('weekly','monthly','yearly')",
            name="ck_subscriptions_frequency",
        ),
    )


__all__ = ["Base", "Subscription"]
