"""
Adapters layer - Collaborator implementations (snapshot file, salon REST API).
"""

from .salon_api_client import SalonApiClient
from .snapshot_store import SnapshotStore

__all__ = ["SalonApiClient", "SnapshotStore"]
