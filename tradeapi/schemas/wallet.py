from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from tradeapi.models.wallet import TransactionSource, TransactionType
from tradeapi.schemas.pagination import PaginationMeta
from tradeapi.utils.money import format_naira


class WalletResponse(BaseModel):
    """지갑 정보"""

    id: int = Field(..., description="지갑 ID")
    user_id: int = Field(..., description="사용자 ID")
    balance: Decimal = Field(..., description="현재 잔액")
    currency: str = Field(..., description="통화 코드")
    is_active: bool = Field(..., description="활성 여부")

    @computed_field  # type: ignore[misc]
    @property
    def formatted_balance(self) -> str:
        return format_naira(self.balance)

    class Config:
        from_attributes = True


class WalletOperationRequest(BaseModel):
    """입금/출금 요청"""

    amount: Decimal = Field(
        ..., ge=100, le=10_000_000, decimal_places=2, description="금액 (NGN)"
    )
    description: Optional[str] = Field(None, max_length=255, description="메모")


class WalletTransactionResponse(BaseModel):
    """지갑 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    reference: str = Field(..., description="거래 참조 번호")
    wallet_id: int
    type: TransactionType = Field(..., description="credit / debit")
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    source: TransactionSource
    trade_id: Optional[int] = Field(None, description="연결된 거래 ID (거래 발생 시)")
    meta_data: Optional[dict] = Field(None, description="부가 정보")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletOperationResponse(BaseModel):
    transaction: WalletTransactionResponse
    wallet: WalletResponse


class WalletTransactionListResponse(BaseModel):
    """지갑 원장 조회 응답"""

    transactions: List[WalletTransactionResponse]
    pagination: PaginationMeta
