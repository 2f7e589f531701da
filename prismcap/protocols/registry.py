"""
Protocol handler registry with decorator support.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from prismcap.protocols.base import Layer

if TYPE_CHECKING:
    from prismcap.protocols.base import BaseProtocolHandler


class ProtocolHandlerRegistry:
    """
    Registry for protocol handlers.

    Handlers are indexed by id and by layer; short-name lookup is what the
    decoder uses to follow ``ParseResult.next_protocol``.
    """

    def __init__(self):
        self._handlers: dict[str, type[BaseProtocolHandler]] = {}
        self._by_layer: dict[int, list[str]] = {}

    def register(self, handler_cls: type[BaseProtocolHandler]) -> type[BaseProtocolHandler]:
        """Register a protocol handler class."""
        if not handler_cls.name:
            raise ValueError(f"Handler {handler_cls.__name__} must have a name")

        handler_id = handler_cls.handler_id()
        if handler_id in self._handlers:
            raise ValueError(f"Handler {handler_id} already registered")

        self._handlers[handler_id] = handler_cls
        self._by_layer.setdefault(handler_cls.layer.value, []).append(handler_id)
        return handler_cls

    def get(self, name: str) -> type[BaseProtocolHandler] | None:
        """Get handler by id or short name."""
        handler_cls = self._handlers.get(name)
        if handler_cls:
            return handler_cls

        for cls in self._handlers.values():
            if cls.name == name:
                return cls
        return None

    def get_by_layer(self, layer: Layer) -> list[type[BaseProtocolHandler]]:
        """Get all handlers for a layer, highest priority first."""
        handler_ids = self._by_layer.get(layer.value, [])
        handlers = [self._handlers[hid] for hid in handler_ids]
        return sorted(handlers, key=lambda h: h.priority, reverse=True)


# Global registry instance
_global_registry = ProtocolHandlerRegistry()


def get_global_registry() -> ProtocolHandlerRegistry:
    """Get the global protocol handler registry."""
    return _global_registry


def register_protocol(
    name: str,
    layer: Layer,
    priority: int = 0,
    registry: ProtocolHandlerRegistry | None = None
) -> Callable[[type[BaseProtocolHandler]], type[BaseProtocolHandler]]:
    """
    Decorator to register a protocol handler.

    Example:
        @register_protocol('dns', Layer.APPLICATION, priority=80)
        class DNSHandler(BaseProtocolHandler):
            ...
    """
    if registry is None:
        registry = _global_registry

    def decorator(cls: type[BaseProtocolHandler]) -> type[BaseProtocolHandler]:
        cls.name = name
        cls.layer = layer
        cls.priority = priority
        return registry.register(cls)

    return decorator
