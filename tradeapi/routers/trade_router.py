"""
거래 API 라우터

- POST /trade/buy: NGN 금액으로 매수
- POST /trade/sell: 코인 수량 매도
- POST /trade/quote: 견적 (잔액 확인 없이 계산만, 기록하지 않음)
- GET /trade/history: 거래 내역 (필터, 페이징)
- GET /trade/{reference}: 거래 단건 조회

모든 엔드포인트는 Bearer 토큰 인증 필요
"""

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query

from tradeapi.core.security import get_current_user_id
from tradeapi.deps import get_trading_service
from tradeapi.models.trade import TradeStatus, TradeType
from tradeapi.schemas.common import BaseResponse
from tradeapi.schemas.trade import BuyRequest, QuoteRequest, SellRequest
from tradeapi.services.trading_service import TradingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trade", tags=["trade"])


@router.post("/buy", response_model=BaseResponse)
def buy_crypto(
    request: BuyRequest,
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """
    암호화폐 매수

    지불 금액(amount_in_naira)에서 수수료를 뺀 금액만큼 현재 시세로 매수합니다.

    에러:
    - 422 TRADE_001: 지원하지 않는 코인
    - 422 TRADE_002: 최소 거래 금액 미만
    - 400 BALANCE_001: 지갑 잔액 부족
    - 503 RATE_001: 시세 조회 실패
    """
    trade = trading_service.buy(user_id, request.symbol, request.amount_in_naira)
    return BaseResponse(success=True, data={"trade": trade.model_dump(mode="json")})


@router.post("/sell", response_model=BaseResponse)
def sell_crypto(
    request: SellRequest,
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """
    암호화폐 매도

    에러:
    - 400 BALANCE_002: 보유 수량 부족
    - 422 TRADE_002: 매도 금액(수수료 전)이 최소 거래 금액 미만
    """
    trade = trading_service.sell(user_id, request.symbol, request.amount)
    return BaseResponse(success=True, data={"trade": trade.model_dump(mode="json")})


@router.post("/quote", response_model=BaseResponse)
def get_quote(
    request: QuoteRequest,
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """거래 견적 - 실행 시와 같은 계산 결과 (시세가 변하지 않았다면)"""
    quote = trading_service.quote(request.type, request.symbol, request.amount)
    return BaseResponse(success=True, data={"quote": quote.model_dump(mode="json")})


@router.get("/history", response_model=BaseResponse)
def get_trade_history(
    type: Optional[TradeType] = Query(None, description="buy / sell"),
    symbol: Optional[str] = Query(None, description="코인 심볼"),
    status: Optional[TradeStatus] = Query(None, description="거래 상태"),
    date_from: Optional[date] = Query(None, description="시작일 (YYYY-MM-DD, UTC)"),
    date_to: Optional[date] = Query(None, description="종료일 (YYYY-MM-DD, UTC)"),
    limit: int = Query(15, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """내 거래 내역 조회 (최신순)"""
    result = trading_service.get_history(
        user_id=user_id,
        trade_type=type,
        symbol=symbol,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return BaseResponse(
        success=True,
        data={"trades": [trade.model_dump(mode="json") for trade in result.trades]},
        meta={"pagination": result.pagination.model_dump()},
    )


@router.get("/{reference}", response_model=BaseResponse)
def get_trade(
    reference: str = Path(..., description="거래 참조 번호 (TRD-...)"),
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """거래 단건 조회 - 다른 사용자의 거래는 404"""
    trade = trading_service.get_trade(user_id, reference)
    return BaseResponse(success=True, data={"trade": trade.model_dump(mode="json")})
