"""
Dataset type registry and adapter factory.
"""

from __future__ import annotations

from collections.abc import Sequence

from app.scraping.adapters import AgendaAdapter, FilingFeedAdapter, GISPermitAdapter
from app.scraping.base import AdapterContext, ScraperBase
from app.scraping.config.models import AgendaConfig, DatasetConfig
from app.scraping.errors import ConfigurationError


class AdapterRegistry:
    """
    Maps dataset types to adapter classes and builds adapters for one cycle.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, type[ScraperBase]] = {"arcgis": GISPermitAdapter}

    def supports_dataset(self, dataset_type: object) -> bool:
        return isinstance(dataset_type, str) and dataset_type.strip().lower() in self._registrations

    def create_dataset_adapter(
        self,
        *,
        context: AdapterContext,
        jurisdiction: str,
        dataset: DatasetConfig,
    ) -> ScraperBase:
        adapter_class = self._registrations.get(dataset.type)
        if adapter_class is None:
            allowed = ", ".join(sorted(self._registrations))
            raise ConfigurationError(
                f"Unknown dataset type='{dataset.type}' for '{dataset.label}'. "
                f"Allowed types: {allowed}."
            )
        return adapter_class(context=context, jurisdiction=jurisdiction, dataset=dataset)

    @staticmethod
    def create_agenda_adapter(
        *,
        context: AdapterContext,
        jurisdiction: str,
        agenda: AgendaConfig,
    ) -> AgendaAdapter:
        return AgendaAdapter(context=context, jurisdiction=jurisdiction, agenda=agenda)

    @staticmethod
    def create_filing_adapter(
        *,
        context: AdapterContext,
        ciks: Sequence[str],
    ) -> FilingFeedAdapter:
        return FilingFeedAdapter(context=context, ciks=ciks)
