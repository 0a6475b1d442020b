"""
ArcGIS feature-service permit adapter.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.domain.competitor_watch import ScrapeOptions, ScrapeTally
from app.scraping.base import AdapterContext, RecordCandidate, ScraperBase
from app.scraping.config.models import DatasetConfig
from app.scraping.errors import ConfigurationError, SourceFetchError
from app.scraping.helpers import normalize_address, parse_date, render_template
from app.scraping.scoring import is_significant_permit, permit_priority
from db.models.competitor_signal import SignalType

PAGE_SIZE = 1000
TITLE_MAX_LENGTH = 200
_ID_FIELDS = ("OBJECTID", "objectid", "id")
_ADDRESS_FALLBACKS = ("site_address", "location")
_DATE_FALLBACKS = ("created_date", "issue_date")


class GISPermitAdapter(ScraperBase):
    """
    Queries one ArcGIS layer for permits entered since the cutoff.
    """

    category = "permits"

    def __init__(
        self,
        *,
        context: AdapterContext,
        jurisdiction: str,
        dataset: DatasetConfig,
    ) -> None:
        if not dataset.url or not dataset.label:
            raise ConfigurationError(
                f"GIS dataset for '{jurisdiction}' requires both url and label."
            )
        if dataset.type != "arcgis":
            raise ConfigurationError(
                f"GIS dataset '{dataset.label}' has unsupported type '{dataset.type}'."
            )
        super().__init__(context=context, source=dataset.label, jurisdiction=jurisdiction)
        self.dataset = dataset

    def job_query(self, options: ScrapeOptions) -> dict[str, Any]:
        return {
            **super().job_query(options),
            "dataset": self.dataset.label,
            "url": self.dataset.url,
        }

    def build_query_params(self, cutoff: datetime) -> dict[str, str]:
        date_field = self.dataset.date_field
        if date_field:
            where = f"{date_field} >= '{cutoff.date().isoformat()}'"
            order_by = f"{date_field} DESC"
        else:
            where = "1=1"
            order_by = "OBJECTID DESC"
        return {
            "where": where,
            "outFields": "*",
            "f": "json",
            "orderByFields": order_by,
            "resultRecordCount": str(PAGE_SIZE),
        }

    def collect(self, *, cutoff: datetime, tally: ScrapeTally) -> None:
        query_url = f"{self.dataset.url.rstrip('/')}/query"
        payload = self.context.http.get_json(query_url, params=self.build_query_params(cutoff))
        if not isinstance(payload, dict):
            raise SourceFetchError(f"Unexpected ArcGIS payload from {query_url}", url=query_url)

        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise SourceFetchError(f"ArcGIS query error: {message}", url=query_url)

        features = payload.get("features") or []
        self.ingest(features, extract=self.extract, cutoff=cutoff, tally=tally)

    def extract(self, feature: dict[str, Any]) -> RecordCandidate:
        attributes = feature["attributes"]
        if not isinstance(attributes, dict):
            raise ValueError("feature attributes must be an object")

        source_id = _first_present(attributes, _ID_FIELDS)
        if source_id is None:
            raise ValueError("feature has no object id")

        when = parse_date(self._date_value(attributes), now=self.context.clock())
        if not is_significant_permit(attributes):
            return RecordCandidate(when_iso=when, signal=None)

        address = normalize_address(self._address_value(attributes))
        signal = self.build_signal(
            type=SignalType.PERMIT,
            source_id=str(source_id),
            title=self.build_title(attributes),
            address=address or None,
            when_iso=when,
            link=self.build_link(attributes),
            raw_data=attributes,
            priority=permit_priority(attributes),
        )
        return RecordCandidate(when_iso=when, signal=signal)

    def build_title(self, attributes: dict[str, Any]) -> str:
        if self.dataset.title_template:
            title = render_template(self.dataset.title_template, attributes)
        else:
            permit_type = attributes.get("permit_type") or attributes.get("type") or "Permit"
            description = attributes.get("description") or attributes.get("work_description") or ""
            title = f"{permit_type}: {description}"
        return title[:TITLE_MAX_LENGTH]

    def build_link(self, attributes: dict[str, Any]) -> str | None:
        if not self.dataset.link_template:
            return None
        return render_template(self.dataset.link_template, attributes) or None

    def _address_value(self, attributes: dict[str, Any]) -> Any:
        primary = self.dataset.address_field or "address"
        return _first_present(attributes, (primary, *_ADDRESS_FALLBACKS))

    def _date_value(self, attributes: dict[str, Any]) -> Any:
        primary = self.dataset.date_field or "date_entered"
        return _first_present(attributes, (primary, *_DATE_FALLBACKS))


def _first_present(attributes: dict[str, Any], fields: tuple[str, ...]) -> Any:
    for field_name in fields:
        value = attributes.get(field_name)
        if value not in (None, ""):
            return value
    return None
