"""
Engine assembly from process configuration.

`create_engine` wires the transport, the discovery cache backing, the
orchestrator and the provider registry from a Config, and returns a
SigninEngine that addresses providers by name.
"""

import logging
from typing import Optional

import redis

from .config import Config, get_config
from .correlation import CorrelationStore, correlation_key
from .discovery import DiscoveryResolver, InMemoryDiscoveryCache, RedisDiscoveryCache
from .models import AuthorizationRequest, CallbackPayload, CorrelationAttributes, Identity
from .orchestrator import SigninOrchestrator
from .providers.base_provider import ProviderConfig
from .providers.provider_manager import ProviderManager, ProviderManagerError
from .transport import HttpTransport

logger = logging.getLogger(__name__)


class SigninEngine:
    """
    By-name facade over SigninOrchestrator.

    Args:
        orchestrator: Configured orchestrator
        provider_manager: Registry of provider configurations
    """

    def __init__(self, orchestrator: SigninOrchestrator, provider_manager: ProviderManager):
        self.orchestrator = orchestrator
        self.provider_manager = provider_manager

    def provider(self, name: str) -> ProviderConfig:
        """
        Look up a registered provider.

        Raises:
            ProviderManagerError: If no provider with that name is registered
        """
        config = self.provider_manager.get_provider(name)
        if config is None:
            raise ProviderManagerError(f"Unknown provider: {name}")
        return config

    def start(self, provider_name: str, timeout: Optional[float] = None) -> AuthorizationRequest:
        return self.orchestrator.start(self.provider(provider_name), timeout=timeout)

    def complete(self, provider_name: str, callback: CallbackPayload,
                 saved: Optional[CorrelationAttributes], timeout: Optional[float] = None) -> Identity:
        return self.orchestrator.complete(self.provider(provider_name), callback, saved, timeout=timeout)

    def start_with_store(self, provider_name: str, store: CorrelationStore,
                         timeout: Optional[float] = None) -> str:
        """
        Begin a sign-in and persist its attributes in the caller's store.

        Returns:
            The authorization URL the caller must redirect to
        """
        request = self.start(provider_name, timeout=timeout)
        store.put(correlation_key(provider_name), request.attributes)
        return request.request_uri

    def complete_with_store(self, provider_name: str, callback: CallbackPayload,
                            store: CorrelationStore, timeout: Optional[float] = None) -> Identity:
        """
        Finish a sign-in, consuming the saved attributes from the caller's store.

        The attributes are taken before any verification so that a failed
        attempt cannot be replayed.
        """
        saved = store.take(correlation_key(provider_name))
        return self.complete(provider_name, callback, saved, timeout=timeout)


def create_engine(config: Optional[Config] = None, transport: Optional[HttpTransport] = None) -> SigninEngine:
    """
    Build a SigninEngine from configuration.

    Args:
        config: Configuration; the process-wide one is loaded if omitted
        transport: Optional transport (tests inject one around a mocked session)

    Returns:
        Ready to use SigninEngine
    """
    config = config or get_config()
    engine_config = config.get_engine_config()

    transport = transport or HttpTransport(
        timeout=engine_config['REQUEST_TIMEOUT'],
        user_agent=engine_config['USER_AGENT']
    )

    ttl = engine_config['DISCOVERY_CACHE_TTL']
    if engine_config['DISCOVERY_CACHE_BACKEND'] == 'redis':
        cache = RedisDiscoveryCache(redis.Redis.from_url(engine_config['REDIS_URL']), ttl=ttl)
    else:
        cache = InMemoryDiscoveryCache(ttl=ttl)

    orchestrator = SigninOrchestrator(
        transport,
        resolver=DiscoveryResolver(transport, cache),
        timeout=engine_config['REQUEST_TIMEOUT']
    )
    provider_manager = ProviderManager(config)

    logger.info(
        f"Sign-in engine ready: providers={list(provider_manager.get_all_providers())}, "
        f"discovery cache={engine_config['DISCOVERY_CACHE_BACKEND']} (ttl {ttl}s)"
    )
    return SigninEngine(orchestrator, provider_manager)
