from pydantic import BaseModel
from typing import Optional


class PaginationMeta(BaseModel):
    """페이지네이션 메타 정보"""
    limit: int
    offset: int
    total_count: int
    has_next: bool

    @classmethod
    def build(cls, limit: int, offset: int, total_count: int) -> "PaginationMeta":
        return cls(
            limit=limit,
            offset=offset,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )


# 엔드포인트별 페이지네이션 제한
class PaginationLimits:
    TRADE_HISTORY = {"min": 1, "max": 100, "default": 15}
    WALLET_TRANSACTIONS = {"min": 1, "max": 100, "default": 15}


def clamp_limit(limit: Optional[int], limits: dict) -> int:
    if limit is None:
        return limits["default"]
    return max(limits["min"], min(limit, limits["max"]))
