import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from propdesk.models.base import Base


class DbSource(str, enum.Enum):
    """Backing store a challenge row was read from. Order is merge precedence."""

    PRIMARY = "PRIMARY"
    BOLT = "BOLT"
    OLD = "OLD"


SOURCE_ORDER: tuple[DbSource, ...] = (DbSource.PRIMARY, DbSource.BOLT, DbSource.OLD)


class ChallengeStatus(str, enum.Enum):
    """Raw status column of user_challenges."""

    PENDING_PAYMENT = "pending_payment"
    PENDING_CREDENTIALS = "pending_credentials"
    ACTIVE = "active"
    PASSED = "passed"
    FAILED = "failed"
    FUNDED = "funded"
    BREACHED = "breached"
    REJECTED = "rejected"


class DisplayStatus(str, enum.Enum):
    """Trader-facing status, derived and never stored."""

    BREACHED = "breached"
    REJECTED = "rejected"
    PASSED = "passed"
    AWAITING_CREDENTIALS = "awaiting_credentials"
    AWAITING_CONTRACT = "awaiting_contract"
    CONTRACT_SIGNED = "contract_signed"
    CREDENTIALS_GIVEN = "credentials_given"


class UserChallenge(Base):
    __tablename__ = "user_challenges"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    challenge_type: Mapped[str | None] = mapped_column(String, nullable=True)
    challenge_type_id: Mapped[str | None] = mapped_column(String, nullable=True)
    account_size: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    amount_paid: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default=ChallengeStatus.PENDING_PAYMENT.value
    )
    trading_account_id: Mapped[str | None] = mapped_column(String, nullable=True)
    trading_account_password: Mapped[str | None] = mapped_column(String, nullable=True)
    trading_account_server: Mapped[str | None] = mapped_column(String, nullable=True)
    credentials_sent: Mapped[bool | None] = mapped_column(Boolean, nullable=True, server_default=false())
    contract_signed: Mapped[bool | None] = mapped_column(Boolean, nullable=True, server_default=false())
    credentials_visible: Mapped[bool | None] = mapped_column(Boolean, nullable=True, server_default=false())
    phase: Mapped[int | None] = mapped_column(Integer, nullable=True, server_default="1")
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchase_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    contract_signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    credentials_released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
