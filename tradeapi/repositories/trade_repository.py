from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from tradeapi.models.trade import Trade, TradeStatus, TradeType
from tradeapi.repositories.base import BaseRepository, generate_reference
from tradeapi.schemas.crypto import PriceSnapshot
from tradeapi.services.trade_calculator import TradeBreakdown
from tradeapi.schemas.trade import TradeResponse


class TradeRepository(BaseRepository[Trade, TradeResponse]):
    """거래 기록 리포지토리. 상태 전이는 pending -> completed | failed 만 허용"""

    def __init__(self, db: Session):
        super().__init__(Trade, TradeResponse, db)

    def create_pending(
        self,
        user_id: int,
        breakdown: TradeBreakdown,
        snapshot: PriceSnapshot,
    ) -> Trade:
        trade = Trade(
            reference=generate_reference("TRD"),
            user_id=user_id,
            type=breakdown.type,
            crypto_symbol=breakdown.symbol,
            crypto_amount=breakdown.crypto_amount,
            rate=breakdown.rate,
            subtotal=breakdown.subtotal,
            fee_percentage=breakdown.fee_percentage,
            fee_amount=breakdown.fee_amount,
            total_amount=breakdown.total_amount,
            status=TradeStatus.PENDING,
            rate_data=snapshot.model_dump(mode="json"),
        )
        self.db.add(trade)
        self.db.flush()
        return trade

    def mark_completed(self, trade: Trade) -> Trade:
        self._finalize(trade, TradeStatus.COMPLETED)
        return trade

    def mark_failed(self, trade: Trade, reason: str) -> Trade:
        self._finalize(trade, TradeStatus.FAILED, reason)
        return trade

    def _finalize(
        self, trade: Trade, status: TradeStatus, reason: Optional[str] = None
    ) -> None:
        if trade.status is not TradeStatus.PENDING:
            raise ValueError(
                f"Trade {trade.reference} is already {trade.status.value}"
            )
        trade.status = status
        trade.failure_reason = reason
        self.db.flush()

    def get_user_trade(self, user_id: int, reference: str) -> Optional[TradeResponse]:
        trade = (
            self.db.query(Trade)
            .filter(Trade.user_id == user_id, Trade.reference == reference)
            .first()
        )
        return self._to_schema(trade)

    def list_for_user(
        self,
        user_id: int,
        trade_type: Optional[TradeType] = None,
        symbol: Optional[str] = None,
        status: Optional[TradeStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 15,
        offset: int = 0,
    ) -> Tuple[List[TradeResponse], int]:
        """거래 내역 조회 (최신순, 페이징)"""
        query = self.db.query(Trade).filter(Trade.user_id == user_id)

        if trade_type is not None:
            query = query.filter(Trade.type == trade_type)
        if symbol:
            query = query.filter(Trade.crypto_symbol == symbol.upper())
        if status is not None:
            query = query.filter(Trade.status == status)
        if date_from is not None:
            query = query.filter(
                Trade.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc)
            )
        if date_to is not None:
            query = query.filter(
                Trade.created_at
                < datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
            )

        total_count = query.count()
        trades = (
            query.order_by(desc(Trade.created_at), desc(Trade.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(trades), total_count
