from dependency_injector import containers, providers

from tradeapi.config import Settings
from tradeapi.services.rate_oracle import CoinGeckoService
from tradeapi.services.redis_service import RedisService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class InfraModule(containers.DeclarativeContainer):
    """External integrations shared across requests."""

    config = providers.DependenciesContainer()

    redis_service = providers.Singleton(RedisService, settings=config.config)
    rate_oracle = providers.Singleton(
        CoinGeckoService, settings=config.config, redis_service=redis_service
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=["tradeapi.deps"],
    )

    config = providers.Container(ConfigModule)
    infra = providers.Container(InfraModule, config=config)
