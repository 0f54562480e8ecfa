from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.orm import Session

from tradeapi.config import Settings
from tradeapi.containers import Container
from tradeapi.database.session import get_db

# Services
from tradeapi.services.fee_service import FeeService
from tradeapi.services.rate_oracle import RateOracle
from tradeapi.services.trading_service import TradingService
from tradeapi.services.wallet_service import WalletService


@inject
def get_settings(settings: Settings = Depends(Provide[Container.config.config])) -> Settings:
    return settings


@inject
def get_rate_oracle(
    rate_oracle: RateOracle = Depends(Provide[Container.infra.rate_oracle]),
) -> RateOracle:
    return rate_oracle


def get_wallet_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> WalletService:
    return WalletService(db=db, settings=settings)


def get_trading_service(
    db: Session = Depends(get_db),
    rate_oracle: RateOracle = Depends(get_rate_oracle),
    settings: Settings = Depends(get_settings),
) -> TradingService:
    return TradingService(db=db, rate_oracle=rate_oracle, settings=settings)


def get_fee_service(db: Session = Depends(get_db)) -> FeeService:
    return FeeService(db=db)
