from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from tradeapi.config import Settings
from tradeapi.core.assets import SUPPORTED_CRYPTOS, get_crypto_info, normalize_symbol
from tradeapi.core.exceptions import RateUnavailableError, UnsupportedAssetError
from tradeapi.schemas.crypto import PriceSnapshot
from tradeapi.services.redis_service import RedisService
from tradeapi.utils.money import to_decimal

logger = logging.getLogger(__name__)


class RateOracle(Protocol):
    """자산 1 단위의 NGN 가격을 제공하는 외부 가격 소스"""

    def get_price(self, symbol: str) -> PriceSnapshot:
        """가격을 가져올 수 없으면 RateUnavailableError"""
        ...

    def get_all_prices(self) -> Dict[str, PriceSnapshot]:
        """가격을 가져온 심볼만 포함 (실패 시 빈 dict)"""
        ...


class CoinGeckoService:
    """CoinGecko simple/price 기반 가격 오라클 (Redis 캐시 사용, 없으면 매번 조회)"""

    _SIMPLE_PRICE_PATH = "/simple/price"
    _PING_PATH = "/ping"
    _ALL_PRICES_CACHE_KEY = "coingecko:prices:all:ngn"

    def __init__(
        self,
        settings: Settings,
        redis_service: Optional[RedisService] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = settings.COINGECKO_BASE_URL.rstrip("/")
        self._timeout = httpx.Timeout(settings.COINGECKO_TIMEOUT_SECONDS, connect=5.0)
        self._api_key = settings.COINGECKO_API_KEY
        self._cache_ttl = settings.COINGECKO_CACHE_TTL
        self._redis = redis_service  # Optional for graceful degradation
        self._transport = transport

    @staticmethod
    def _price_cache_key(coin_id: str) -> str:
        return f"coingecko:price:{coin_id}:ngn"

    def _client(self, timeout: Optional[httpx.Timeout] = None) -> httpx.Client:
        headers = {"accept": "application/json"}
        if self._api_key:
            headers["x-cg-pro-api-key"] = self._api_key
        return httpx.Client(
            base_url=self._base_url,
            timeout=timeout or self._timeout,
            headers=headers,
            transport=self._transport,
        )

    def _fetch_simple_price(self, coin_ids: str) -> Dict[str, Any]:
        params = {
            "ids": coin_ids,
            "vs_currencies": "ngn",
            "include_last_updated_at": "true",
        }
        started_at = time.perf_counter()
        try:
            with self._client() as client:
                response = client.get(self._SIMPLE_PRICE_PATH, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("CoinGecko request timed out for %s", coin_ids)
            raise RateUnavailableError(
                "Price service timed out. Please try again later."
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("CoinGecko request error: %s", exc)
            raise RateUnavailableError() from exc

        elapsed_ms = int((time.perf_counter() - started_at) * 1000)
        if response.status_code != 200:
            logger.error(
                "Failed to fetch price for %s (status=%s, body=%s)",
                coin_ids,
                response.status_code,
                response.text[:200],
            )
            raise RateUnavailableError(details={"status_code": response.status_code})

        try:
            payload = response.json()
        except ValueError as exc:
            raise RateUnavailableError("Malformed response from price service") from exc
        if not isinstance(payload, dict):
            raise RateUnavailableError("Malformed response from price service")

        logger.info(f"CoinGecko simple/price {coin_ids} in {elapsed_ms}ms")
        return payload

    @staticmethod
    def _to_snapshot(symbol: str, payload: Dict[str, Any]) -> PriceSnapshot:
        info = SUPPORTED_CRYPTOS[symbol]
        entry = payload.get(info["id"])
        if not isinstance(entry, dict) or entry.get("ngn") is None:
            raise RateUnavailableError(details={"symbol": symbol})

        try:
            return PriceSnapshot(
                symbol=symbol,
                coin_id=info["id"],
                name=info["name"],
                price_ngn=to_decimal(entry["ngn"]),
                last_updated_at=int(entry.get("last_updated_at") or time.time()),
                fetched_at=datetime.now(timezone.utc).isoformat(),
            )
        except (PydanticValidationError, ArithmeticError, TypeError, ValueError) as exc:
            raise RateUnavailableError(
                "Malformed price data", details={"symbol": symbol}
            ) from exc

    def _cached_snapshot(self, cache_key: str) -> Optional[PriceSnapshot]:
        """캐시 항목이 깨졌거나 형식이 바뀌었으면 캐시 미스로 취급"""
        cached = self._redis.get(cache_key) if self._redis else None
        if not cached:
            return None
        try:
            return PriceSnapshot(**cached)
        except (PydanticValidationError, TypeError) as exc:
            logger.warning(f"Ignoring malformed cache entry {cache_key}: {exc}")
            return None

    def get_price(self, symbol: str) -> PriceSnapshot:
        symbol = normalize_symbol(symbol)
        info = get_crypto_info(symbol)
        if info is None:
            raise UnsupportedAssetError(symbol)

        cache_key = self._price_cache_key(info["id"])
        cached = self._cached_snapshot(cache_key)
        if cached is not None:
            logger.debug(f"Cache HIT: {cache_key}")
            return cached

        snapshot = self._to_snapshot(symbol, self._fetch_simple_price(info["id"]))
        if self._redis:
            self._redis.set(cache_key, snapshot.model_dump(mode="json"), self._cache_ttl)
        return snapshot

    def get_all_prices(self) -> Dict[str, PriceSnapshot]:
        cached = self._redis.get(self._ALL_PRICES_CACHE_KEY) if self._redis else None
        if cached:
            try:
                return {symbol: PriceSnapshot(**data) for symbol, data in cached.items()}
            except (PydanticValidationError, AttributeError, TypeError) as exc:
                logger.warning(f"Ignoring malformed cache entry {self._ALL_PRICES_CACHE_KEY}: {exc}")

        coin_ids = ",".join(info["id"] for info in SUPPORTED_CRYPTOS.values())
        try:
            payload = self._fetch_simple_price(coin_ids)
        except RateUnavailableError as exc:
            logger.error(f"Failed to fetch all prices: {exc}")
            return {}

        prices: Dict[str, PriceSnapshot] = {}
        for symbol in SUPPORTED_CRYPTOS:
            try:
                prices[symbol] = self._to_snapshot(symbol, payload)
            except RateUnavailableError:
                logger.warning(f"No NGN price returned for {symbol}")

        if prices and self._redis:
            self._redis.set(
                self._ALL_PRICES_CACHE_KEY,
                {symbol: snap.model_dump(mode="json") for symbol, snap in prices.items()},
                self._cache_ttl,
            )
        return prices

    def clear_cache(self) -> None:
        if not self._redis:
            return
        keys = [self._price_cache_key(info["id"]) for info in SUPPORTED_CRYPTOS.values()]
        self._redis.delete(self._ALL_PRICES_CACHE_KEY, *keys)

    def is_available(self) -> bool:
        try:
            with self._client(timeout=httpx.Timeout(5.0)) as client:
                return client.get(self._PING_PATH).status_code == 200
        except httpx.HTTPError:
            return False
