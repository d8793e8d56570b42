"""
Provider Manager
Registry of listing and detail providers with per-provider outcome accounting
"""
from dataclasses import dataclass
from typing import Dict, List, Optional
import threading
import time

from ..providers.base import BaseProvider, SearchableProvider
from .errors import ValidationError


@dataclass
class ProviderHealth:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    last_error: str = ""
    last_latency_ms: float = 0.0
    last_success_at: float = 0.0


class ProviderManager:
    """Holds every provider by key; listing providers also take part in global search."""

    def __init__(self):
        self._providers: Dict[str, BaseProvider] = {}
        self._enabled: Dict[str, bool] = {}
        self._health: Dict[str, ProviderHealth] = {}
        self._lock = threading.RLock()

    def register(self, provider):
        """Register a provider"""
        if not isinstance(provider, BaseProvider):
            raise TypeError(f"Invalid provider type for register(): {type(provider)}. Expected BaseProvider.")
        if not getattr(provider, "key", ""):
            raise ValueError("Provider must define non-empty 'key'.")
        with self._lock:
            self._providers[provider.key] = provider
            self._enabled[provider.key] = True
            self._health.setdefault(provider.key, ProviderHealth())

    def unregister(self, key: str):
        with self._lock:
            self._providers.pop(key, None)
            self._enabled.pop(key, None)
            self._health.pop(key, None)

    def enable_provider(self, key: str, enabled: bool = True):
        with self._lock:
            if key in self._enabled:
                self._enabled[key] = enabled

    def get(self, key: str) -> BaseProvider:
        provider = self.find(key)
        if provider is None:
            raise ValidationError(f"Unknown provider '{key}'", error="Unknown provider")
        return provider

    def find(self, key: str) -> Optional[BaseProvider]:
        """Case-insensitive lookup by key or display name."""
        wanted = str(key or "").strip().lower()
        with self._lock:
            for provider in self._providers.values():
                if provider.key.lower() == wanted or provider.name.lower() == wanted:
                    return provider
        return None

    def search_providers(self) -> List[SearchableProvider]:
        """Enabled providers that can answer a search query."""
        with self._lock:
            return [
                p for k, p in self._providers.items()
                if self._enabled.get(k) and isinstance(p, SearchableProvider)
            ]

    def record_outcome(self, key: str, ok: bool, error: str = "", latency_ms: float = 0.0):
        with self._lock:
            health = self._health.setdefault(key, ProviderHealth())
            health.attempts += 1
            health.last_latency_ms = latency_ms
            if ok:
                health.successes += 1
                health.last_error = ""
                health.last_success_at = time.time()
            else:
                health.failures += 1
                health.last_error = error
            provider = self._providers.get(key)
            if provider is not None:
                provider.last_error = "" if ok else error

    def describe(self) -> List[Dict]:
        """Provider list for the /api/providers endpoint."""
        with self._lock:
            out = []
            for key, provider in self._providers.items():
                info = provider.healthcheck()
                health = self._health.get(key, ProviderHealth())
                info.update({
                    "enabled": bool(self._enabled.get(key)),
                    "attempts": health.attempts,
                    "failures": health.failures,
                    "last_latency_ms": round(health.last_latency_ms, 2),
                })
                out.append(info)
            return out
