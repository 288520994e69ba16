"""
Resolution of the providers eligible for a service request.
"""

import logging
from typing import List, Optional

from ..domain.models import Provider, Service
from .ports import ProviderDirectory, ServiceCatalog, read_upstream

logger = logging.getLogger(__name__)


class ProviderResolver:
    """
    Determines which providers a search iterates over.

    A preferred provider that is active and belongs to the salon is used on
    its own. Otherwise every active provider of the salon specialized in the
    service's category is returned, ordered by name.
    """

    def __init__(self, catalog: ServiceCatalog, directory: ProviderDirectory) -> None:
        self._catalog = catalog
        self._directory = directory

    async def resolve(
        self,
        salon_id: str,
        service_id: str,
        provider_id: Optional[str] = None,
    ) -> List[Provider]:
        """Resolve providers by service id; an unknown service yields no providers."""
        service = await read_upstream(
            "ServiceCatalog.get_service",
            self._catalog.get_service(service_id),
        )
        if service is None:
            logger.warning("Service not found: %s", service_id)
            return []

        return await self.resolve_for_service(salon_id, service, provider_id)

    async def resolve_for_service(
        self,
        salon_id: str,
        service: Service,
        provider_id: Optional[str] = None,
    ) -> List[Provider]:
        """Resolve providers for an already loaded service."""
        if provider_id:
            preferred = await read_upstream(
                "ProviderDirectory.get_provider",
                self._directory.get_provider(provider_id),
            )
            if preferred is not None and preferred.is_active and preferred.salon_id == salon_id:
                return [preferred]

            logger.info(
                "Preferred provider %s not available in salon %s, using all eligible providers",
                provider_id, salon_id,
            )

        providers = await read_upstream(
            "ProviderDirectory.list_eligible_providers",
            self._directory.list_eligible_providers(salon_id, service.category),
        )

        eligible = [
            provider for provider in providers
            if provider.is_active
            and provider.salon_id == salon_id
            and provider.can_perform(service.category)
        ]
        eligible.sort(key=lambda provider: (provider.name.lower(), provider.id))

        return eligible
