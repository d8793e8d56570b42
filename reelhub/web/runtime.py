"""Runtime bootstrap for the ReelHub web API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

from ..core.aggregate import GlobalSearch
from ..core.auth import ApiKeyAuth
from ..core.base_urls import BaseUrlResolver
from ..core.fetcher import Fetcher
from ..core.provider_manager import ProviderManager
from ..core.settings_manager import SettingsManager
from ..core.sqlite_store import SqliteStore
from ..providers.base import BaseProvider
from ..providers.allmovieshub import AllMoviesHubProvider
from ..providers.catalog import build_listing_providers
from ..providers.desiremovies import DesireMoviesProvider
from ..providers.filmyfly import FilmyFlyProvider
from ..providers.fourkhdhub import FourKHDHubProvider
from ..providers.gyanigurus import GyanGurusProvider
from ..providers.hdhub4u import HDHub4uProvider
from ..providers.hubcloud import HubCloudProvider
from ..providers.kmmovies import KMMoviesProvider
from ..providers.moviesdrive import MoviesDriveProvider
from ..providers.showbox import ShowboxProvider
from ..providers.zinkmovies import ZinkMoviesProvider

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ReelHubRuntime:
    """Shared service graph used by web endpoints."""

    settings: SettingsManager
    store: SqliteStore
    fetcher: Fetcher
    base_urls: BaseUrlResolver
    auth: ApiKeyAuth
    providers: ProviderManager
    global_search: GlobalSearch
    # Detail and chain providers, keyed by route segment.
    details: Dict[str, BaseProvider] = field(default_factory=dict)


def configure_logging(settings: SettingsManager) -> None:
    level = str(settings.get("log_level", "INFO") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger("reelhub").setLevel(getattr(logging, level, logging.INFO))


def build_runtime(settings: Optional[SettingsManager] = None, fetcher: Optional[Fetcher] = None) -> ReelHubRuntime:
    """Create and wire core services."""

    settings = settings or SettingsManager()
    configure_logging(settings)
    store = SqliteStore(settings.settings_dir, default_limit=int(settings.get("default_requests_limit", 1000)))
    fetcher = fetcher or Fetcher(settings)
    base_urls = BaseUrlResolver(settings, fetcher)

    manager = ProviderManager()
    for provider in build_listing_providers(fetcher, base_urls, settings=settings):
        manager.register(provider)

    hubcloud = HubCloudProvider(fetcher, base_urls=base_urls, settings=settings)
    details: Dict[str, BaseProvider] = {
        "4khdhub": FourKHDHubProvider(fetcher, base_urls=base_urls, settings=settings),
        "hdhub4u": HDHub4uProvider(fetcher, base_urls=base_urls, settings=settings),
        "kmmovies": KMMoviesProvider(fetcher, base_urls=base_urls, settings=settings),
        "desiremovies": DesireMoviesProvider(fetcher, base_urls=base_urls, settings=settings),
        "moviesdrive": MoviesDriveProvider(fetcher, base_urls=base_urls, settings=settings),
        "allmovieshub": AllMoviesHubProvider(fetcher, base_urls=base_urls, settings=settings),
        "gyanigurus": GyanGurusProvider(fetcher, base_urls=base_urls, settings=settings),
        "filmyfly": FilmyFlyProvider(fetcher, base_urls=base_urls, settings=settings),
        "zinkmovies": ZinkMoviesProvider(fetcher, base_urls=base_urls, settings=settings, hubcloud=hubcloud),
        "hubcloud": hubcloud,
        "showbox": ShowboxProvider(fetcher, base_urls=base_urls, settings=settings),
    }

    return ReelHubRuntime(
        settings=settings,
        store=store,
        fetcher=fetcher,
        base_urls=base_urls,
        auth=ApiKeyAuth(settings, store),
        providers=manager,
        global_search=GlobalSearch(manager, settings),
        details=details,
    )
