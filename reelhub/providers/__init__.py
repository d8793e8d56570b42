from .base import BaseProvider, ListingProvider, ProviderDescriptor, SearchableProvider
from .catalog import DESCRIPTORS, build_listing_providers

__all__ = [
    "BaseProvider",
    "DESCRIPTORS",
    "ListingProvider",
    "ProviderDescriptor",
    "SearchableProvider",
    "build_listing_providers",
]
