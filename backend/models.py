from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Dict, List, Optional

from sqlalchemy.orm import Mapped, mapped_column, relationship

from extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class UserRole(StrEnum):
    UNASSIGNED = "UNASSIGNED"
    CLIENT = "CLIENT"
    LAWYER = "LAWYER"
    ADMIN = "ADMIN"


class VerificationStatus(StrEnum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class PayoutStatus(StrEnum):
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"


class TransactionType(StrEnum):
    CREDIT_PURCHASE = "CREDIT_PURCHASE"
    APPOINTMENT_DEDUCTION = "APPOINTMENT_DEDUCTION"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=_new_id)
    identity_subject: Mapped[str] = mapped_column(
        db.String(128), unique=True, nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(db.String(120), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(db.String(512), nullable=True)
    role: Mapped[str] = mapped_column(
        db.String(16),
        nullable=False,
        default=UserRole.UNASSIGNED.value,
        server_default=UserRole.UNASSIGNED.value,
        index=True,
    )
    specialty: Mapped[Optional[str]] = mapped_column(db.String(120), nullable=True)
    experience_years: Mapped[Optional[int]] = mapped_column(db.Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(db.Text, nullable=True)
    verification_status: Mapped[Optional[str]] = mapped_column(
        db.String(16),
        nullable=True,
        default=VerificationStatus.PENDING.value,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    credits: Mapped[int] = mapped_column(
        db.Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    payouts: Mapped[List["Payout"]] = relationship(
        back_populates="lawyer",
        passive_deletes=True,
    )
    transactions: Mapped[List["CreditTransaction"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<User {self.email} ({self.role})>"


class Payout(db.Model):
    __tablename__ = "payouts"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=_new_id)
    lawyer_id: Mapped[str] = mapped_column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    credits: Mapped[int] = mapped_column(db.Integer, nullable=False)
    amount: Mapped[float] = mapped_column(db.Float, nullable=False, default=0.0)
    platform_fee: Mapped[float] = mapped_column(db.Float, nullable=False, default=0.0)
    net_amount: Mapped[float] = mapped_column(db.Float, nullable=False, default=0.0)
    paypal_email: Mapped[Optional[str]] = mapped_column(db.String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        db.String(16),
        nullable=False,
        default=PayoutStatus.PROCESSING.value,
        server_default=PayoutStatus.PROCESSING.value,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        db.DateTime(timezone=True), nullable=True
    )
    processed_by: Mapped[Optional[str]] = mapped_column(db.String(36), nullable=True)

    lawyer: Mapped["User"] = relationship(back_populates="payouts")

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<Payout {self.id} {self.credits} credits ({self.status})>"


class CreditTransaction(db.Model):
    __tablename__ = "credit_transactions"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(db.Integer, nullable=False)
    type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    package_id: Mapped[Optional[str]] = mapped_column(db.String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    user: Mapped["User"] = relationship(back_populates="transactions")

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<CreditTransaction {self.type} {self.amount:+d}>"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )
    actor_id: Mapped[Optional[str]] = mapped_column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_type: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    message: Mapped[str] = mapped_column(db.Text, nullable=False)
    context: Mapped[Optional[Dict[str, object]]] = mapped_column(db.JSON, nullable=True)
    level: Mapped[str] = mapped_column(db.String(20), nullable=False, default="info", index=True)

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"<AuditLog {self.event_type} ({self.level})>"
