"""
지갑 API 라우터

- GET /wallet: 내 지갑 조회 (최초 조회 시 생성)
- POST /wallet/deposit: 입금
- POST /wallet/withdraw: 출금
- GET /wallet/transactions: 지갑 원장 조회 (필터, 페이징)

모든 엔드포인트는 Bearer 토큰 인증 필요
"""

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from tradeapi.core.security import get_current_user_id
from tradeapi.deps import get_wallet_service
from tradeapi.models.wallet import TransactionSource, TransactionType
from tradeapi.schemas.common import BaseResponse
from tradeapi.schemas.wallet import WalletOperationRequest
from tradeapi.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=BaseResponse)
def get_my_wallet(
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> Any:
    """내 지갑 정보 조회"""
    wallet = wallet_service.get_wallet(user_id)
    return BaseResponse(success=True, data={"wallet": wallet.model_dump(mode="json")})


@router.post("/deposit", response_model=BaseResponse)
def deposit(
    request: WalletOperationRequest,
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> Any:
    """
    지갑 입금

    잔액 증가와 원장 기록이 하나의 트랜잭션으로 처리됩니다.

    Args:
        request: 입금 금액과 메모
    """
    result = wallet_service.deposit(
        user_id=user_id, amount=request.amount, description=request.description
    )
    return BaseResponse(success=True, data=result.model_dump(mode="json"))


@router.post("/withdraw", response_model=BaseResponse)
def withdraw(
    request: WalletOperationRequest,
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> Any:
    """
    지갑 출금

    잔액이 부족하면 400 (BALANCE_001). 동시에 여러 출금이 들어와도
    잔액이 음수가 되지 않습니다.
    """
    result = wallet_service.withdraw(
        user_id=user_id, amount=request.amount, description=request.description
    )
    return BaseResponse(success=True, data=result.model_dump(mode="json"))


@router.get("/transactions", response_model=BaseResponse)
def get_transactions(
    type: Optional[TransactionType] = Query(None, description="credit / debit"),
    source: Optional[TransactionSource] = Query(
        None, description="deposit / withdrawal / trade_buy / trade_sell"
    ),
    date_from: Optional[date] = Query(None, description="시작일 (YYYY-MM-DD, UTC)"),
    date_to: Optional[date] = Query(None, description="종료일 (YYYY-MM-DD, UTC)"),
    limit: int = Query(15, ge=1, le=100, description="페이지당 항목 수"),
    offset: int = Query(0, ge=0, description="시작 오프셋"),
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> Any:
    """지갑 원장 조회 (최신순)"""
    result = wallet_service.get_transactions(
        user_id=user_id,
        transaction_type=type,
        source=source,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return BaseResponse(
        success=True,
        data={
            "transactions": [
                entry.model_dump(mode="json") for entry in result.transactions
            ]
        },
        meta={"pagination": result.pagination.model_dump()},
    )
