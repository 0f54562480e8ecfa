from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional

import pytest

from tradeapi.core.assets import SUPPORTED_CRYPTOS, normalize_symbol
from tradeapi.core.exceptions import RateUnavailableError, UnsupportedAssetError
from tradeapi.database.connection import build_engine, build_session_factory
from tradeapi.models import Base
from tradeapi.models.fee_setting import BUY_FEE, SELL_FEE
from tradeapi.repositories.fee_setting_repository import FeeSettingRepository
from tradeapi.schemas.crypto import PriceSnapshot


class StubRateOracle:
    """고정 시세를 돌려주는 가격 오라클 (호출 횟수 기록)"""

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None, fail: bool = False):
        self.prices = prices if prices is not None else {
            "BTC": Decimal("50000000"),
            "ETH": Decimal("3000000"),
            "USDT": Decimal("1500"),
        }
        self.fail = fail
        self.calls = 0

    def _snapshot(self, symbol: str) -> PriceSnapshot:
        return PriceSnapshot(
            symbol=symbol,
            coin_id=SUPPORTED_CRYPTOS[symbol]["id"],
            name=SUPPORTED_CRYPTOS[symbol]["name"],
            price_ngn=self.prices[symbol],
            last_updated_at=1700000000,
            fetched_at=datetime(2024, 1, 15, tzinfo=timezone.utc).isoformat(),
        )

    def get_price(self, symbol: str) -> PriceSnapshot:
        self.calls += 1
        symbol = normalize_symbol(symbol)
        if symbol not in SUPPORTED_CRYPTOS:
            raise UnsupportedAssetError(symbol)
        if self.fail or symbol not in self.prices:
            raise RateUnavailableError()
        return self._snapshot(symbol)

    def get_all_prices(self) -> Dict[str, PriceSnapshot]:
        self.calls += 1
        if self.fail:
            return {}
        return {symbol: self._snapshot(symbol) for symbol in self.prices}

    def is_available(self) -> bool:
        return not self.fail


def seed_fees(db, percentage: str = "1.50", minimum_amount: str = "1000.00") -> None:
    repo = FeeSettingRepository(db)
    for name in (BUY_FEE, SELL_FEE):
        repo.upsert(
            name=name,
            percentage=Decimal(percentage),
            minimum_amount=Decimal(minimum_amount),
        )
    db.commit()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'trade_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fee_db(db):
    """기본 수수료 정책(1.5%, 최소 ₦1,000)이 설정된 세션"""
    seed_fees(db)
    return db


@pytest.fixture
def rate_oracle():
    return StubRateOracle()
