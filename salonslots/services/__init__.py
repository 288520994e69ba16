"""
Service layer helpers that orchestrate collaborators and domain logic.
"""

from .conflict_filter import ConflictFilter
from .ports import BookingLedger, ProviderDirectory, SalonConfig, ServiceCatalog
from .provider_resolver import ProviderResolver
from .slot_search import CandidateSet, SearchPolicy, SlotSearchService

__all__ = [
    "BookingLedger",
    "CandidateSet",
    "ConflictFilter",
    "ProviderDirectory",
    "ProviderResolver",
    "SalonConfig",
    "SearchPolicy",
    "ServiceCatalog",
    "SlotSearchService",
]
