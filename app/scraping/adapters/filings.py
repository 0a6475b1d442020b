"""
SEC EDGAR filing feed adapter.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from datetime import datetime
from functools import partial
from typing import Any

from app.domain.competitor_watch import ScrapeOptions, ScrapeTally
from app.scraping.base import AdapterContext, RecordCandidate, ScraperBase
from app.scraping.errors import SourceFetchError
from app.scraping.helpers import parse_date
from app.scraping.logging_utils import log_event
from app.scraping.scoring import extract_filing_type, filing_priority, is_significant_filing
from db.models.competitor_signal import SignalType

logger = logging.getLogger(__name__)

EDGAR_FEED_URL = "https://www.sec.gov/cgi-bin/browse-edgar"
FEED_ENTRY_COUNT = 40
SEC_JURISDICTION = "SEC"
SEC_SOURCE = "SEC EDGAR"

ATOM_NS = "{http://www.w3.org/2005/Atom}"
_ACCESSION_RE = re.compile(r"accession-number=(\d+-\d+-\d+)")


class FilingFeedAdapter(ScraperBase):
    """
    Walks the recent-filings Atom feed of every tracked filer.

    A failing filer is logged and skipped; the job fails only when every
    filer failed.
    """

    category = "sec"

    def __init__(self, *, context: AdapterContext, ciks: Sequence[str]) -> None:
        super().__init__(context=context, source=SEC_SOURCE, jurisdiction=SEC_JURISDICTION)
        self.ciks = list(ciks)

    def job_query(self, options: ScrapeOptions) -> dict[str, Any]:
        return {**super().job_query(options), "ciks": self.ciks}

    def feed_params(self, cik: str) -> dict[str, str]:
        return {
            "action": "getcompany",
            "CIK": cik,
            "type": "",
            "dateb": "",
            "owner": "include",
            "start": "0",
            "count": str(FEED_ENTRY_COUNT),
            "output": "atom",
        }

    def collect(self, *, cutoff: datetime, tally: ScrapeTally) -> None:
        failures: list[str] = []
        for index, cik in enumerate(self.ciks):
            if index > 0:
                self.context.sleep(self.context.settings.filing_delay_seconds)
            try:
                entries = self.fetch_entries(cik)
            except (SourceFetchError, ET.ParseError) as exc:
                failures.append(f"{cik}: {exc}")
                log_event(
                    logger,
                    logging.WARNING,
                    "filer_scrape_failed",
                    cik=cik,
                    error=str(exc),
                )
                continue

            self.ingest(
                entries,
                extract=partial(self.extract, cik=cik),
                cutoff=cutoff,
                tally=tally,
            )

        if self.ciks and len(failures) == len(self.ciks):
            raise SourceFetchError("All filer feeds failed: " + "; ".join(failures))

    def fetch_entries(self, cik: str) -> list[ET.Element]:
        text = self.context.http.get_text(EDGAR_FEED_URL, params=self.feed_params(cik))
        root = ET.fromstring(text)
        entries = root.findall(f"{ATOM_NS}entry")
        return entries or root.findall("entry")

    def extract(self, entry: ET.Element, *, cik: str) -> RecordCandidate:
        updated = _child_text(entry, "updated")
        when = parse_date(updated, now=self.context.clock())

        title = _child_text(entry, "title") or ""
        summary = _child_text(entry, "summary") or _child_text(entry, "content")
        category = _child(entry, "category")
        filing_type = extract_filing_type(
            category=category.get("term") if category is not None else None,
            title=title,
            summary=summary,
        )
        if not is_significant_filing(filing_type):
            return RecordCandidate(when_iso=when, signal=None)

        entry_id = _child_text(entry, "id")
        company_name = title.split(" - ")[0].strip() or "Unknown Company"
        link = _child(entry, "link")
        href = link.get("href") if link is not None else None

        signal = self.build_signal(
            type=SignalType.SEC_FILING,
            source_id=entry_id or f"{cik}_{int(when.timestamp() * 1000)}",
            title=f"{company_name}: {filing_type} Filing",
            address=None,
            when_iso=when,
            link=href or entry_id,
            raw_data={
                "cik": cik,
                "companyName": company_name,
                "filingType": filing_type,
                "summary": summary,
                "accessionNumber": _accession_number(entry_id),
            },
            priority=filing_priority(filing_type),
        )
        return RecordCandidate(when_iso=when, signal=signal)


def _child(element: ET.Element, tag: str) -> ET.Element | None:
    found = element.find(f"{ATOM_NS}{tag}")
    return found if found is not None else element.find(tag)


def _child_text(element: ET.Element, tag: str) -> str | None:
    child = _child(element, tag)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _accession_number(entry_id: str | None) -> str | None:
    if not entry_id:
        return None
    match = _ACCESSION_RE.search(entry_id)
    return match.group(1) if match else None
