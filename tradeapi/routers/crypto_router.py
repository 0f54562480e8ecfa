"""
시세 / 자산 API 라우터

공개:
- GET /crypto/prices: 지원 코인 전체 NGN 시세
- GET /crypto/prices/{symbol}: 단일 코인 시세
- GET /crypto/supported: 지원 코인 목록
- GET /crypto/fees: 활성 수수료 정책

인증 필요:
- GET /crypto/portfolio: 보유 자산 평가
- GET /crypto/holdings: 보유 자산 목록
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Path

from tradeapi.core.exceptions import RateUnavailableError
from tradeapi.core.security import get_current_user_id
from tradeapi.deps import get_fee_service, get_rate_oracle, get_trading_service
from tradeapi.schemas.common import BaseResponse
from tradeapi.services.fee_service import FeeService
from tradeapi.services.rate_oracle import RateOracle
from tradeapi.services.trading_service import TradingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crypto", tags=["crypto"])


@router.get("/prices", response_model=BaseResponse)
def get_all_prices(rate_oracle: RateOracle = Depends(get_rate_oracle)) -> Any:
    """지원 코인 전체 시세 - 하나도 가져오지 못하면 503"""
    prices = rate_oracle.get_all_prices()
    if not prices:
        raise RateUnavailableError()
    return BaseResponse(
        success=True,
        data={
            "prices": {
                symbol: snapshot.model_dump(mode="json")
                for symbol, snapshot in prices.items()
            }
        },
    )


@router.get("/prices/{symbol}", response_model=BaseResponse)
def get_price(
    symbol: str = Path(..., description="코인 심볼 (BTC, ETH, USDT)"),
    rate_oracle: RateOracle = Depends(get_rate_oracle),
) -> Any:
    """단일 코인 시세"""
    snapshot = rate_oracle.get_price(symbol)
    return BaseResponse(success=True, data={"price": snapshot.model_dump(mode="json")})


@router.get("/supported", response_model=BaseResponse)
def get_supported_cryptos() -> Any:
    """지원 코인 목록"""
    return BaseResponse(
        success=True,
        data={
            "cryptocurrencies": [
                crypto.model_dump() for crypto in TradingService.supported_assets()
            ]
        },
    )


@router.get("/fees", response_model=BaseResponse)
def get_fees(fee_service: FeeService = Depends(get_fee_service)) -> Any:
    """활성 수수료 정책 목록"""
    return BaseResponse(
        success=True,
        data={"fees": [fee.model_dump(mode="json") for fee in fee_service.list_active()]},
    )


@router.get("/portfolio", response_model=BaseResponse)
def get_portfolio(
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """보유 자산 평가 - 시세 조회에 실패한 코인은 0 으로 평가"""
    portfolio = trading_service.get_portfolio(user_id)
    return BaseResponse(success=True, data=portfolio.model_dump(mode="json"))


@router.get("/holdings", response_model=BaseResponse)
def get_holdings(
    user_id: int = Depends(get_current_user_id),
    trading_service: TradingService = Depends(get_trading_service),
) -> Any:
    """보유 자산 목록"""
    holdings = trading_service.get_holdings(user_id)
    return BaseResponse(
        success=True,
        data={"holdings": [holding.model_dump(mode="json") for holding in holdings]},
    )
