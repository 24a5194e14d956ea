"""
OpenID Connect discovery and JSON Web Key Set resolution.

DiscoveryResolver fetches an issuer's `.well-known/openid-configuration`
document and the key set it references, and keeps both in an injected
DiscoveryCache shared by every concurrent sign-in attempt. Cached entries are
read without touching the network; misses for the same document are serialized
so that concurrent callers observe a single fetch. A cache entry is only ever
written after the fetched document parsed completely.
"""

import json
import logging
import threading
from typing import Dict, Any, Optional, Protocol

from cachetools import TTLCache
from redis.exceptions import RedisError

from .audit_logger import AuditEventType, get_audit_logger
from .errors import DiscoveryFailedError, DiscoveryFailureReason, NetworkError, SigningKeyNotFoundError
from .models import JsonWebKey, JsonWebKeySet, OpenIdConfiguration
from .transport import Deadline, HttpTransport

WELL_KNOWN_PATH = '/.well-known/openid-configuration'
DEFAULT_CACHE_TTL = 3600


class DiscoveryCache(Protocol):
    """
    Storage for raw discovery and JWKS documents.

    Implementations must make `set` atomic with respect to `get`: a reader sees
    either the previous document or the new one, never a partial value.
    """

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, key: str, value: Dict[str, Any]) -> None:
        ...


class InMemoryDiscoveryCache:
    """Process-local TTL cache."""

    def __init__(self, ttl: int = DEFAULT_CACHE_TTL, maxsize: int = 64):
        self.ttl = ttl
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._cache[key] = value

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


class RedisDiscoveryCache:
    """
    Discovery cache shared between processes through Redis.

    Documents are stored as JSON strings with a TTL, so each SETEX replaces the
    entry atomically. An unreachable Redis degrades to a cache miss: reads
    return None and writes are skipped, with a warning.
    """

    def __init__(self, redis_client, ttl: int = DEFAULT_CACHE_TTL, prefix: str = 'signin:discovery:'):
        self.redis_client = redis_client
        self.ttl = ttl
        self.prefix = prefix
        self.logger = logging.getLogger(f"{__name__}.RedisDiscoveryCache")

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self.redis_client.get(self.prefix + key)
        except RedisError as e:
            self.logger.warning(f"Redis read failed for {key}, fetching instead: {e.__class__.__name__}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            self.logger.warning(f"Discarding undecodable cache entry for {key}")
            return None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self.redis_client.setex(self.prefix + key, self.ttl, json.dumps(value))
        except RedisError as e:
            self.logger.warning(f"Redis write failed for {key}, entry not cached: {e.__class__.__name__}")


class DiscoveryResolver:
    """
    Resolves OpenID configurations and signing keys with caching.

    Args:
        transport: HTTP transport for outbound calls
        cache: Cache backing; defaults to a process-local TTL cache
    """

    def __init__(self, transport: HttpTransport, cache: Optional[DiscoveryCache] = None):
        self.transport = transport
        self.cache = cache if cache is not None else InMemoryDiscoveryCache()
        self.logger = logging.getLogger(__name__)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _fetch_json(self, url: str, deadline: Optional[Deadline]) -> Dict[str, Any]:
        response = self.transport.get(url, deadline=deadline)
        if response.status_code != 200:
            raise DiscoveryFailedError(
                f"Fetching {url} failed with status {response.status_code}",
                DiscoveryFailureReason.HTTP_ERROR
            )
        try:
            document = response.json()
        except ValueError as e:
            raise DiscoveryFailedError(f"Response from {url} is not JSON",
                                       DiscoveryFailureReason.DECODE_ERROR) from e
        if not isinstance(document, dict):
            raise DiscoveryFailedError(f"Response from {url} is not a JSON object",
                                       DiscoveryFailureReason.DECODE_ERROR)
        return document

    def _cached_document(self, key: str, url: str, parse, deadline: Optional[Deadline],
                         force_refresh: bool = False):
        """
        Return parse(document) for key, fetching url on a miss.

        Concurrent misses for the same key wait on one another; the second
        caller then finds the entry written by the first. A caller with a
        deadline waits no longer than its remaining time.

        Raises:
            NetworkError: If the deadline passes while waiting for another fetch
        """
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return parse(cached)

        lock = self._lock_for(key)
        wait = deadline.remaining() if deadline is not None else -1
        if not lock.acquire(timeout=wait):
            self.logger.warning(f"Timed out waiting for a concurrent fetch of {url}")
            raise NetworkError(f"Deadline exceeded waiting for {url}")

        try:
            if not force_refresh:
                cached = self.cache.get(key)
                if cached is not None:
                    return parse(cached)

            document = self._fetch_json(url, deadline)
            parsed = parse(document)
            self.cache.set(key, document)
            get_audit_logger().log_event(AuditEventType.DISCOVERY_FETCHED, details={'url': url})
            return parsed
        finally:
            lock.release()

    def resolve(self, issuer: str, deadline: Optional[Deadline] = None) -> OpenIdConfiguration:
        """
        Resolve the OpenID configuration of an issuer.

        Args:
            issuer: Issuer identifier URL
            deadline: Optional deadline for the network call

        Returns:
            Parsed OpenIdConfiguration

        Raises:
            DiscoveryFailedError: On HTTP failure, undecodable document or issuer mismatch
            NetworkError: On transport failure
        """
        normalized_issuer = issuer.rstrip('/')
        url = f"{normalized_issuer}{WELL_KNOWN_PATH}"

        def parse(document: Dict[str, Any]) -> OpenIdConfiguration:
            try:
                configuration = OpenIdConfiguration.from_dict(document)
            except KeyError as e:
                raise DiscoveryFailedError(
                    f"Discovery document for {normalized_issuer} lacks required field {e}",
                    DiscoveryFailureReason.DECODE_ERROR
                ) from e
            if configuration.issuer.rstrip('/') != normalized_issuer:
                raise DiscoveryFailedError(
                    f"Issuer mismatch: expected {normalized_issuer}, got {configuration.issuer}",
                    DiscoveryFailureReason.ISSUER_MISMATCH
                )
            return configuration

        cache_key = f"openid-configuration:{normalized_issuer}"
        configuration = self._cached_document(cache_key, url, parse, deadline)
        self.logger.debug(f"Resolved OpenID configuration for {normalized_issuer}")
        return configuration

    def resolve_keys(self, jwks_uri: str, deadline: Optional[Deadline] = None,
                     force_refresh: bool = False) -> JsonWebKeySet:
        """
        Resolve the JSON Web Key Set published at jwks_uri.

        Args:
            jwks_uri: Key set URL from the discovery document
            deadline: Optional deadline for the network call
            force_refresh: Bypass the cache and replace the entry

        Raises:
            DiscoveryFailedError: On HTTP failure or undecodable key set
            NetworkError: On transport failure
        """

        def parse(document: Dict[str, Any]) -> JsonWebKeySet:
            try:
                return JsonWebKeySet.from_dict(document)
            except (KeyError, TypeError) as e:
                raise DiscoveryFailedError(f"Key set at {jwks_uri} is malformed",
                                           DiscoveryFailureReason.DECODE_ERROR) from e

        key_set = self._cached_document(f"jwks:{jwks_uri}", jwks_uri, parse, deadline, force_refresh)
        if force_refresh:
            self.logger.info(f"Refreshed signing keys from {jwks_uri}: {len(key_set)} keys")
            get_audit_logger().log_event(
                AuditEventType.SIGNING_KEYS_REFRESHED,
                details={'jwks_uri': jwks_uri, 'key_count': len(key_set)}
            )
        return key_set

    def find_signing_key(self, jwks_uri: str, kid: str, deadline: Optional[Deadline] = None) -> JsonWebKey:
        """
        Find the key with the given kid, refreshing once on a miss.

        A miss on the cached key set usually means the provider rotated its
        keys, so one uncached fetch is attempted before giving up.

        Raises:
            SigningKeyNotFoundError: If no key with that kid is published
        """
        key = self.resolve_keys(jwks_uri, deadline=deadline).find_by_kid(kid)
        if key is not None:
            return key

        self.logger.info(f"Signing key {kid} not in cached key set, refreshing {jwks_uri}")
        key = self.resolve_keys(jwks_uri, deadline=deadline, force_refresh=True).find_by_kid(kid)
        if key is None:
            raise SigningKeyNotFoundError(f"No signing key with kid '{kid}' at {jwks_uri}")
        return key
