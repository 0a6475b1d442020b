"""
Municipal planning agenda adapter.

One adapter serves four publishing formats. Each format is a strategy that
fetches raw records and extracts candidates from them; dispatch goes through
AGENDA_STRATEGIES keyed by AgendaFormat.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup, Tag

from app.domain.competitor_watch import ScrapeOptions, ScrapeTally
from app.scraping.base import AdapterContext, RecordCandidate, ScraperBase
from app.scraping.config.models import AgendaConfig, AgendaFormat
from app.scraping.errors import ConfigurationError, SourceFetchError
from app.scraping.helpers import (
    clean_text,
    find_date_in_text,
    parse_date,
    resolve_link,
    try_parse_date,
)
from app.scraping.scoring import (
    GENERIC_AGENDA_PRIORITY,
    STRUCTURED_AGENDA_PRIORITY,
    agenda_keyword_hit,
)
from db.models.competitor_signal import SignalType

ATOM_NS = "{http://www.w3.org/2005/Atom}"

ROW_SELECTOR = ".agendaRow, .agenda-item, tr[data-meeting]"
ROW_DATE_SELECTOR = ".date, .meeting-date, td:first-child"
ROW_LINK_SELECTOR = 'a[href*="agenda" i]'
ROW_TITLE_SELECTOR = ".title, .meeting-name, td:nth-child(2)"
DEFAULT_MEETING_TITLE = "Planning Commission Meeting"
_MEETING_DATE_FIELDS = ("date", "eventDate", "startDateTime")


@dataclass(frozen=True)
class AgendaStrategy:
    fetch: Callable[["AgendaAdapter"], list[Any]]
    extract: Callable[["AgendaAdapter", Any], RecordCandidate]
    priority: int


class AgendaAdapter(ScraperBase):
    category = "agendas"

    def __init__(
        self,
        *,
        context: AdapterContext,
        jurisdiction: str,
        agenda: AgendaConfig,
    ) -> None:
        if not agenda.url or not agenda.label:
            raise ConfigurationError(
                f"Agenda source for '{jurisdiction}' requires both url and label."
            )
        try:
            agenda_format = AgendaFormat(str(agenda.format).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Agenda '{agenda.label}' has unknown format '{agenda.format}'."
            ) from exc

        super().__init__(context=context, source=agenda.label, jurisdiction=jurisdiction)
        self.agenda = agenda
        self.format = agenda_format
        self.strategy = AGENDA_STRATEGIES[agenda_format]

    def job_query(self, options: ScrapeOptions) -> dict[str, Any]:
        return {
            **super().job_query(options),
            "agenda": self.agenda.label,
            "format": self.format.value,
            "url": self.agenda.url,
        }

    def collect(self, *, cutoff: datetime, tally: ScrapeTally) -> None:
        records = self.strategy.fetch(self)
        self.ingest(
            records,
            extract=lambda record: self.strategy.extract(self, record),
            cutoff=cutoff,
            tally=tally,
        )

    def agenda_signal(
        self,
        *,
        source_id: str,
        title: str,
        when: datetime,
        link: str | None,
        raw_data: dict[str, Any],
    ) -> RecordCandidate:
        signal = self.build_signal(
            type=SignalType.AGENDA,
            source_id=source_id,
            title=title,
            address=None,
            when_iso=when,
            link=link,
            raw_data=raw_data,
            priority=self.strategy.priority,
        )
        return RecordCandidate(when_iso=when, signal=signal)

    def fetch_soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.context.http.get_text(self.agenda.url), "html.parser")


# Structured meetings API


def _fetch_meetings(adapter: AgendaAdapter) -> list[Any]:
    api_url = f"{adapter.agenda.url.rstrip('/')}/api/meetings"
    payload = adapter.context.http.get_json(api_url)
    if isinstance(payload, dict):
        payload = payload.get("value")
    if not isinstance(payload, list):
        raise SourceFetchError(f"Unexpected meetings payload from {api_url}", url=api_url)
    return payload


def _extract_meeting(adapter: AgendaAdapter, meeting: dict[str, Any]) -> RecordCandidate:
    raw_date = next((meeting[key] for key in _MEETING_DATE_FIELDS if meeting.get(key)), None)
    when = try_parse_date(raw_date)
    if when is None:
        raise ValueError("meeting has no parseable date")

    name = meeting.get("name") or meeting.get("title") or DEFAULT_MEETING_TITLE
    if not _meeting_has_keywords(meeting):
        return RecordCandidate(when_iso=when, signal=None)

    meeting_id = meeting.get("id")
    base_url = adapter.agenda.url.rstrip("/")
    if meeting.get("agendaUrl"):
        link = resolve_link(f"{base_url}/", str(meeting["agendaUrl"]))
    elif meeting_id is not None:
        link = f"{base_url}/meeting/{meeting_id}"
    else:
        link = None

    return adapter.agenda_signal(
        source_id=str(meeting_id) if meeting_id is not None else f"{raw_date}_{name}",
        title=f"{name}: {raw_date}",
        when=when,
        link=link,
        raw_data=meeting,
    )


def _meeting_has_keywords(meeting: dict[str, Any]) -> bool:
    if agenda_keyword_hit(meeting.get("type")):
        return True
    items = meeting.get("items")
    if isinstance(items, list) and any(
        isinstance(item, dict) and agenda_keyword_hit(item.get("title"), item.get("description"))
        for item in items
    ):
        return True
    return agenda_keyword_hit(meeting.get("name"), meeting.get("title"))


# Tabular HTML (agenda center style listings)


def _fetch_rows(adapter: AgendaAdapter) -> list[Any]:
    return adapter.fetch_soup().select(ROW_SELECTOR)


def _extract_row(adapter: AgendaAdapter, row: Tag) -> RecordCandidate:
    link_tag = row.select_one(ROW_LINK_SELECTOR)
    href = link_tag.get("href") if link_tag is not None else None
    if not href:
        raise ValueError("row has no agenda link")
    full_link = resolve_link(adapter.agenda.url, str(href))

    date_tag = row.select_one(ROW_DATE_SELECTOR)
    date_text = clean_text(date_tag.get_text(" ")) if date_tag is not None else ""
    when = (
        try_parse_date(date_text)
        or find_date_in_text(date_text)
        or adapter.context.clock()
    )

    title_tag = row.select_one(ROW_TITLE_SELECTOR)
    title = clean_text(title_tag.get_text(" ")) if title_tag is not None else ""
    if not title:
        title = clean_text(link_tag.get_text(" "))

    if not agenda_keyword_hit(title):
        return RecordCandidate(when_iso=when, signal=None)

    return adapter.agenda_signal(
        source_id=full_link,
        title=title or DEFAULT_MEETING_TITLE,
        when=when,
        link=full_link,
        raw_data={"dateText": date_text, "title": title},
    )


# Generic HTML page


def _fetch_agenda_links(adapter: AgendaAdapter) -> list[Any]:
    links: list[Tag] = []
    for anchor in adapter.fetch_soup().find_all("a", href=True):
        text = anchor.get_text(" ", strip=True)
        href = str(anchor["href"])
        if not text:
            continue
        if "agenda" not in text.lower() and "agenda" not in href.lower():
            continue
        if find_date_in_text(text) is None:
            continue
        links.append(anchor)
    return links


def _extract_link(adapter: AgendaAdapter, anchor: Tag) -> RecordCandidate:
    text = clean_text(anchor.get_text(" ", strip=True))
    when = find_date_in_text(text)
    if when is None:
        raise ValueError("agenda link text has no date")
    if not agenda_keyword_hit(text):
        return RecordCandidate(when_iso=when, signal=None)

    full_link = resolve_link(adapter.agenda.url, str(anchor["href"]))
    return adapter.agenda_signal(
        source_id=full_link,
        title=text,
        when=when,
        link=full_link,
        raw_data={"text": text},
    )


# RSS / Atom feed


def _fetch_feed_items(adapter: AgendaAdapter) -> list[Any]:
    text = adapter.context.http.get_text(adapter.agenda.url)
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise SourceFetchError(f"Invalid feed XML from {adapter.agenda.url}: {exc}") from exc

    items = root.findall("./channel/item")
    if items:
        return items
    return root.findall(f"{ATOM_NS}entry") or root.findall("entry")


def _extract_feed_item(adapter: AgendaAdapter, item: ET.Element) -> RecordCandidate:
    published = (
        _feed_text(item, "pubDate")
        or _feed_text(item, "published")
        or _feed_text(item, "updated")
    )
    when = parse_date(published, now=adapter.context.clock())

    title = _feed_text(item, "title") or ""
    description = _feed_text(item, "description") or _feed_text(item, "summary") or ""
    if not agenda_keyword_hit(title, description):
        return RecordCandidate(when_iso=when, signal=None)

    link = _feed_link(item)
    source_id = _feed_text(item, "guid") or _feed_text(item, "id") or link
    if not source_id:
        raise ValueError("feed item has no guid, id or link")

    return adapter.agenda_signal(
        source_id=source_id,
        title=title or DEFAULT_MEETING_TITLE,
        when=when,
        link=resolve_link(adapter.agenda.url, link) if link else _feed_text(item, "id"),
        raw_data={"title": title, "description": description},
    )


def _feed_child(item: ET.Element, tag: str) -> ET.Element | None:
    found = item.find(tag)
    return found if found is not None else item.find(f"{ATOM_NS}{tag}")


def _feed_text(item: ET.Element, tag: str) -> str | None:
    child = _feed_child(item, tag)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _feed_link(item: ET.Element) -> str | None:
    child = _feed_child(item, "link")
    if child is None:
        return None
    if child.get("href"):
        return child.get("href")
    return child.text.strip() if child.text and child.text.strip() else None


AGENDA_STRATEGIES: dict[AgendaFormat, AgendaStrategy] = {
    AgendaFormat.CIVICCLERK: AgendaStrategy(
        fetch=_fetch_meetings,
        extract=_extract_meeting,
        priority=STRUCTURED_AGENDA_PRIORITY,
    ),
    AgendaFormat.CIVICPLUS: AgendaStrategy(
        fetch=_fetch_rows,
        extract=_extract_row,
        priority=STRUCTURED_AGENDA_PRIORITY,
    ),
    AgendaFormat.HTML: AgendaStrategy(
        fetch=_fetch_agenda_links,
        extract=_extract_link,
        priority=GENERIC_AGENDA_PRIORITY,
    ),
    AgendaFormat.RSS: AgendaStrategy(
        fetch=_fetch_feed_items,
        extract=_extract_feed_item,
        priority=GENERIC_AGENDA_PRIORITY,
    ),
}
