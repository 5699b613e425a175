from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum
from typing import List, Optional
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN


MAX_CLIENT_ID = 65535
MAX_TX_ID = 4294967295


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"

    @property
    def moves_money(self) -> bool:
        """Only deposits and withdrawals carry an amount of their own."""
        return self in (TransactionType.deposit, TransactionType.withdrawal)


class TransactionRecord(BaseModel):
    type: TransactionType = Field(..., description="Transaction kind, case-insensitive")
    client: int = Field(..., strict=True, ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    tx: int = Field(..., strict=True, ge=0, le=MAX_TX_ID, description="Globally unique transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        description="Amount moved, only meaningful for deposits and withdrawals"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('client', 'tx', mode='before')
    @classmethod
    def parse_id_text(cls, v):
        # CSV cells arrive as text; booleans and floats stay rejected
        if isinstance(v, str) and v.strip().isdecimal():
            return int(v.strip())
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def drop_amount_for_references(self):
        # dispute, resolve and chargeback point at a stored transaction
        if not self.type.moves_money:
            self.amount = None
        elif self.amount is not None and self.amount < 0:
            raise ValueError('Amount must not be negative')
        return self


class Account(BaseModel):
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.available + self.held


class StoredTransaction(BaseModel):
    amount: Decimal
    disputed: bool = False


def round_amount(value: Decimal, places: int = 4) -> Decimal:
    """Round to at most `places` fractional digits, keeping shorter scales as-is."""
    if -value.as_tuple().exponent <= places:
        return value
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)


class AccountSnapshot(BaseModel):
    client: int = Field(..., description="Client identifier")
    total: Decimal = Field(..., description="Available plus held funds")
    available: Decimal = Field(..., description="Funds that can be withdrawn")
    held: Decimal = Field(..., description="Funds frozen by open disputes")
    locked: bool = Field(..., description="Whether a chargeback froze the account")

    @classmethod
    def from_account(cls, client_id: int, account: Account, locked: bool, places: int = 4) -> "AccountSnapshot":
        return cls(
            client=client_id,
            total=round_amount(account.total, places),
            available=round_amount(account.available, places),
            held=round_amount(account.held, places),
            locked=locked,
        )


class RejectedRecord(BaseModel):
    index: int = Field(..., description="Zero-based position of the record in the batch")
    type: TransactionType
    client: int
    tx: int
    code: str = Field(..., description="Machine-readable rejection code")
    detail: str = Field(..., description="Rejection description")


class ReplaySummary(BaseModel):
    processed: int = Field(0, description="Records handed to the engine")
    rejected: int = Field(0, description="Records rejected by the engine")
    errors: List[RejectedRecord] = Field(default_factory=list)


class ReplayRequest(BaseModel):
    records: List[TransactionRecord] = Field(..., description="Records to replay, in order")


class ReplayResponse(ReplaySummary):
    accounts: List[AccountSnapshot] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(default_factory=datetime.now)
