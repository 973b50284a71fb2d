"""Dependency injection container.

This module provides a simple DI container without external frameworks.
The default bindings build the client object graph exactly once: one
transport, one response cache, one storage, one gateway and the stores
that share them.

Design principles:
1. No magic - explicit registration and resolution
2. Testable - easy to swap implementations
3. Lazy loading - adapters instantiated on first use
4. No global instance - the application owns its container
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import AppConfig, get_config


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        orchestrator = container.resolve(BootstrapOrchestrator)
        ...
        await container.aclose()

        # Testing
        container = Container()
        container.register(HttpTransportPort, lambda: FakeTransport())
        transport = container.resolve(HttpTransportPort)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        self._factories[port_type] = factory
        self._singletons.pop(port_type, None)
        if singleton:
            self._singleton_types.add(port_type)
        else:
            self._singleton_types.discard(port_type)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a port type.

        Args:
            port_type: The type to resolve.

        Returns:
            An instance of the requested type.

        Raises:
            KeyError: If the type is not registered.
        """
        if port_type not in self._factories:
            raise KeyError(f"Type not registered: {port_type}")

        if port_type in self._singleton_types:
            if port_type not in self._singletons:
                self._singletons[port_type] = self._factories[port_type]()
            return self._singletons[port_type]

        return self._factories[port_type]()

    def is_registered(self, port_type: type[Any]) -> bool:
        return port_type in self._factories

    def clear_singletons(self) -> None:
        """Clear all cached singletons.

        Call this in tests to ensure fresh instances.
        """
        self._singletons.clear()

    async def aclose(self) -> None:
        """Close every resolved singleton that holds resources.

        The application owns the container and calls this on shutdown;
        the httpx client of the transport is released here.
        """
        closed: set[int] = set()
        for instance in list(self._singletons.values()):
            close = getattr(instance, "aclose", None)
            if close is None or id(instance) in closed:
                continue
            closed.add(id(instance))
            await close()
        self._singletons.clear()

    def clear_all(self) -> None:
        """Clear all registrations and singletons."""
        self._factories.clear()
        self._singletons.clear()
        self._singleton_types.clear()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with default production bindings.

        Args:
            config: Optional configuration override.

        Returns:
            A configured Container instance.
        """
        from .adapters.cache import NullCache, ResponseCache
        from .adapters.http import HttpxTransport
        from .adapters.storage import InMemoryStorage, JsonFileStorage
        from .ports.cache import ResponseCachePort
        from .ports.gateway import ApiGatewayPort
        from .ports.session import SessionEventsPort
        from .ports.storage import KeyValueStoragePort
        from .ports.transport import HttpTransportPort
        from .services import (
            ApiGateway,
            BootstrapOrchestrator,
            ProfileResolver,
            SessionStore,
        )

        config = config or get_config()
        container = cls(config=config)

        # Transport
        container.register(HttpTransportPort, lambda: HttpxTransport(config.api))

        # Response cache, written only by the gateway
        def create_cache() -> ResponseCachePort:
            if not config.cache.enabled:
                return NullCache()
            return ResponseCache(
                default_ttl_seconds=config.cache.default_ttl_seconds,
                max_entries=config.cache.max_entries,
            )

        container.register(ResponseCachePort, create_cache)

        # Persisted device storage based on config
        def create_storage() -> KeyValueStoragePort:
            if config.storage.backend == "memory":
                return InMemoryStorage()
            return JsonFileStorage.from_config(config.storage)

        container.register(KeyValueStoragePort, create_storage)

        # Gateway
        def create_gateway() -> ApiGateway:
            return ApiGateway(
                transport=container.resolve(HttpTransportPort),
                cache=container.resolve(ResponseCachePort),
                api_config=config.api,
                cache_config=config.cache,
            )

        container.register(ApiGateway, create_gateway)
        container.register(ApiGatewayPort, lambda: container.resolve(ApiGateway))

        # Stores
        def create_session_store() -> SessionStore:
            return SessionStore(
                gateway=container.resolve(ApiGateway),
                storage=container.resolve(KeyValueStoragePort),
                storage_config=config.storage,
            )

        container.register(SessionStore, create_session_store)
        container.register(SessionEventsPort, lambda: container.resolve(SessionStore))

        def create_profile_resolver() -> ProfileResolver:
            return ProfileResolver(
                gateway=container.resolve(ApiGateway),
                sessions=container.resolve(SessionEventsPort),
                storage=container.resolve(KeyValueStoragePort),
                profile_config=config.profile,
                storage_config=config.storage,
            )

        container.register(ProfileResolver, create_profile_resolver)

        # Main entry point for the UI
        def create_orchestrator() -> BootstrapOrchestrator:
            return BootstrapOrchestrator(
                session=container.resolve(SessionStore),
                profiles=container.resolve(ProfileResolver),
            )

        container.register(BootstrapOrchestrator, create_orchestrator)

        return container
