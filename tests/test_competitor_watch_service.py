from __future__ import annotations

import threading
from dataclasses import replace
from datetime import timedelta

import pytest
from sqlalchemy import select

from app.domain.competitor_watch import SignalInput
from app.scraping.adapters.filings import EDGAR_FEED_URL
from app.scraping.config.models import (
    AgendaConfig,
    DatasetConfig,
    EntityConfig,
    JurisdictionConfig,
    Watchlist,
)
from app.services.competitor_watch_service import CompetitorWatchService, ThreadTaskExecutor
from conftest import FIXED_NOW, FakeResponse, fixed_clock, make_settings
from db.models import WatchCycle
from db.models.competitor_signal import SignalType
from db.models.watch_cycle import WatchCycleStatus, WatchCycleTrigger
from enrichment import EnrichmentService
from enrichment.adapter import BaseLLMAdapter, MockLLMAdapter
from enrichment.errors import EnrichmentError

LAYER_URL = "https://gis.example.gov/arcgis/rest/services/Permits/MapServer/0"
RSS_URL = "https://city.example.gov/agendas.rss"
CAMDEN_CIK = "0000906345"

MAR_20_2024_MS = 1710892800000
MAR_21_2024_MS = 1710979200000

WATCHLIST = Watchlist(
    jurisdictions=(
        JurisdictionConfig(
            key="tn_nashville",
            label="Nashville-Davidson",
            state="TN",
            datasets=(
                DatasetConfig(
                    type="arcgis",
                    label="Building Permits",
                    url=LAYER_URL,
                    date_field="date_entered",
                    address_field="address",
                ),
            ),
            agendas=(AgendaConfig(label="Planning Commission", url=RSS_URL, format="rss"),),
        ),
    ),
    entities=(
        EntityConfig(name="Camden Property Trust", keywords=("camden",), cik=CAMDEN_CIK),
        EntityConfig(name="Greystar", keywords=("greystar",)),
    ),
    sec_ciks=(CAMDEN_CIK,),
)

FEATURES = {
    "features": [
        {
            "attributes": {
                "OBJECTID": 1,
                "permit_type": "Multi-Family",
                "description": "New 120-unit apartment building for Camden",
                "estimated_cost": 6_000_000,
                "date_entered": MAR_20_2024_MS,
                "address": "100 Main St",
            }
        },
        {
            "attributes": {
                "OBJECTID": 2,
                "permit_type": "Commercial",
                "description": "Greystar mixed-use tower",
                "estimated_cost": 12_000_000,
                "date_entered": MAR_21_2024_MS,
            }
        },
        {
            "attributes": {
                "OBJECTID": 3,
                "permit_type": "Residential Remodel",
                "description": "Kitchen update",
                "estimated_cost": 40_000,
                "date_entered": MAR_21_2024_MS,
            }
        },
    ]
}

AGENDA_FEED = """<rss version="2.0"><channel><title>Agendas</title>
  <item>
    <title>Planning Commission Agenda</title>
    <description>Includes annexation request for 40 acres</description>
    <link>https://city.example.gov/agendas/55</link>
    <guid>agenda-55</guid>
    <pubDate>Tue, 19 Mar 2024 17:00:00 -0500</pubDate>
  </item>
</channel></rss>"""

FILING_FEED = (
    '<feed xmlns="http://www.w3.org/2005/Atom"><title>Filings</title>'
    "<entry>"
    '<category label="form type" scheme="https://www.sec.gov/" term="8-K"/>'
    "<id>urn:tag:sec.gov,2008:accession-number=0000906345-24-000020</id>"
    '<link rel="alternate" type="text/html" href="https://www.sec.gov/Archives/edgar/data/906345/index.htm"/>'
    "<title>Camden Property Trust - Current report</title>"
    "<updated>2024-03-22T10:00:00Z</updated>"
    "</entry>"
    "</feed>"
)


class FailingAdapter(BaseLLMAdapter):
    model_name = "failing"

    def generate(self, system_prompt: str, prompt: str) -> str:
        raise EnrichmentError("transport", "connection reset")


class BrokenAdapter(BaseLLMAdapter):
    model_name = "broken"

    def generate(self, system_prompt: str, prompt: str) -> str:
        raise RuntimeError("unexpected client bug")


class ImmediateExecutor:
    def submit(self, task, *args, **kwargs) -> None:
        task(*args, **kwargs)


class RejectingExecutor:
    def submit(self, task, *args, **kwargs) -> None:
        raise RuntimeError("executor is shut down")


@pytest.fixture()
def sources(fake_session):
    fake_session.routes[LAYER_URL] = FakeResponse(json_data=FEATURES)
    fake_session.routes[RSS_URL] = FakeResponse(text=AGENDA_FEED)
    fake_session.routes[EDGAR_FEED_URL] = FakeResponse(text=FILING_FEED)
    return fake_session


def _service(store, http_client, *, enrichment=None, watchlist=WATCHLIST, **settings_overrides):
    return CompetitorWatchService(
        store=store,
        settings=make_settings(**settings_overrides),
        watchlist=watchlist,
        enrichment=enrichment if enrichment is not None else EnrichmentService(MockLLMAdapter()),
        http=http_client,
        clock=fixed_clock,
        sleep=lambda _seconds: None,
    )


def _matched_signal(source_id: str = "1", competitor: str | None = "Greystar") -> SignalInput:
    return SignalInput(
        type=SignalType.PERMIT,
        source_id=source_id,
        title="Commercial: Greystar mixed-use tower",
        when_iso=FIXED_NOW - timedelta(days=1),
        priority=9,
        source="Building Permits",
        jurisdiction="tn_nashville",
        competitor_match=competitor,
        confidence=0.8 if competitor else None,
    )


def test_initialize_seeds_once(store, http_client) -> None:
    service = _service(store, http_client)

    assert service.initialize() == (1, 2)
    assert service.initialize() == (0, 0)
    assert [entity.name for entity in store.list_entities()] == ["Camden Property Trust", "Greystar"]


def test_full_cycle(store, http_client, sources) -> None:
    service = _service(store, http_client)

    result = service.run_full_cycle()

    assert result.status == WatchCycleStatus.DONE
    assert result.days_back == 30
    assert (result.scrape.permits.found, result.scrape.permits.new) == (3, 2)
    assert (result.scrape.agendas.found, result.scrape.agendas.new) == (1, 1)
    assert (result.scrape.sec.found, result.scrape.sec.new) == (1, 1)
    assert result.scrape.total.new == 4
    assert result.scrape.failed_sources == 0

    assert result.analysis.processed == 4
    assert result.analysis.analyzed == 3
    assert result.analysis.skipped_no_match == 1
    assert store.pending_signals(max_attempts=3, limit=10) == []

    analyses = store.list_analyses()
    assert len(analyses) == 3
    assert {analysis.model for analysis in analyses} == {"mock"}
    assert {analysis.competitor_id for analysis in analyses} == {"Camden Property Trust", "Greystar"}
    for signal in store.list_signals(competitor="Greystar"):
        assert signal.confidence == pytest.approx(0.75)

    [jurisdiction] = store.list_jurisdictions()
    assert jurisdiction.last_scraped is not None


def test_report_text(store, http_client, sources) -> None:
    report = _service(store, http_client).run_full_cycle().report

    lines = report.splitlines()
    assert lines[0] == "COMPETITOR WATCH REPORT"
    assert "- Permits: 2 new / 3 total" in lines
    assert "- Agendas: 1 new / 1 total" in lines
    assert "- SEC Filings: 1 new / 1 total" in lines
    assert "- TOTAL: 4 new signals" in lines
    assert "- Failed sources: 0" in lines
    assert "- Total Signals: 4" in lines
    assert "- With Competitor Match: 3" in lines
    assert "  - Camden Property Trust: 2 signals" in lines
    assert "  - Greystar: 1 signals" in lines
    assert "Jurisdictions Monitored: 1" in lines
    assert "Competitors Tracked: 2" in lines


def test_empty_report(store, http_client) -> None:
    service = _service(store, http_client, watchlist=Watchlist())

    report = service.generate_report(service.scrape_all(30))

    assert "  (none)" in report.splitlines()
    assert "- TOTAL: 0 new signals" in report


def test_failing_source_does_not_stop_the_cycle(store, http_client, sources) -> None:
    del sources.routes[LAYER_URL]

    result = _service(store, http_client).run_full_cycle()

    assert result.status == WatchCycleStatus.DONE
    assert result.scrape.failed_sources == 1
    assert result.scrape.permits.found == 0
    assert result.scrape.agendas.new == 1
    assert result.scrape.sec.new == 1
    assert "- Failed sources: 1" in result.report




class TestAnalyzePending:
    def test_unmatched_signals_skip_the_model(self, store, http_client) -> None:
        adapter = MockLLMAdapter()
        store.insert_signal(_matched_signal("1", competitor=None))

        totals = _service(store, http_client, enrichment=EnrichmentService(adapter)).analyze_pending()

        assert totals.skipped_no_match == 1
        assert adapter.prompts == []
        assert store.list_signals()[0].analyzed is True
        assert store.list_analyses() == []

    def test_failures_are_retried_up_to_the_cap(self, store, http_client) -> None:
        store.insert_signal(_matched_signal())
        service = _service(store, http_client, enrichment=EnrichmentService(FailingAdapter()))

        for _ in range(3):
            assert service.analyze_pending().failed == 1
        assert service.analyze_pending().processed == 0

        [signal] = store.list_signals()
        assert signal.analysis_attempts == 3
        assert signal.analyzed is False

    def test_unexpected_adapter_error_counts_as_failure(self, store, http_client) -> None:
        store.insert_signal(_matched_signal())

        totals = _service(store, http_client, enrichment=EnrichmentService(BrokenAdapter())).analyze_pending()

        assert totals.failed == 1
        assert store.list_signals()[0].analysis_attempts == 1

    def test_disabled_enrichment_defers_matched_signals(self, store, http_client) -> None:
        store.insert_signal(_matched_signal("1"))
        store.insert_signal(_matched_signal("2", competitor=None))

        totals = _service(store, http_client, enrichment=EnrichmentService(None)).analyze_pending()

        assert totals.deferred == 1
        assert totals.skipped_no_match == 1
        [pending] = store.pending_signals(max_attempts=3, limit=10)
        assert pending.source_id == "1"
        assert pending.analysis_attempts == 0

    def test_disabled_enrichment_still_clears_unmatched_signals(self, store, http_client) -> None:
        store.insert_signal(_matched_signal("a"))
        store.insert_signal(_matched_signal("b"))
        store.insert_signal(replace(_matched_signal("c", competitor=None), priority=5))
        service = _service(store, http_client, enrichment=EnrichmentService(None), analysis_batch_size=2)

        totals = service.analyze_pending()
        service.analyze_pending()

        assert totals.skipped_no_match == 1
        assert totals.deferred == 2
        remaining = [signal.source_id for signal in store.pending_signals(max_attempts=3, limit=10)]
        assert sorted(remaining) == ["a", "b"]


def test_second_cycle_while_running_is_skipped(store, http_client, sources) -> None:
    nested_results = []

    class ReentrantAdapter(BaseLLMAdapter):
        model_name = "reentrant"

        def generate(self, system_prompt: str, prompt: str) -> str:
            nested_results.append(service.run_full_cycle())
            return '{"analysis": "ok", "impact": "low", "confidence": 0.4}'

    service = _service(store, http_client, enrichment=EnrichmentService(ReentrantAdapter()))

    result = service.run_full_cycle()

    assert result.status == WatchCycleStatus.DONE
    assert nested_results
    assert {nested.status for nested in nested_results} == {WatchCycleStatus.SKIPPED}
    assert service.is_running is False


def test_trigger_cycle_records_the_run(store, http_client, sources) -> None:
    service = _service(store, http_client)

    cycle = service.trigger_cycle(executor=ImmediateExecutor(), days_back=14)

    stored = store.get_cycle(cycle.id)
    assert stored.trigger == WatchCycleTrigger.API
    assert stored.days_back == 14
    assert stored.status == WatchCycleStatus.DONE
    assert stored.started_at is not None
    assert stored.finished_at is not None
    assert stored.report.startswith("COMPETITOR WATCH REPORT")
    assert stored.result_payload["scrape"]["total"]["new"] == 4
    assert stored.result_payload["analysis"]["analyzed"] == 3


def test_trigger_cycle_scheduling_failure(store, http_client, session_factory) -> None:
    service = _service(store, http_client)

    with pytest.raises(RuntimeError, match="shut down"):
        service.trigger_cycle(executor=RejectingExecutor())

    with session_factory() as session:
        [cycle] = session.scalars(select(WatchCycle)).all()
    assert cycle.status == WatchCycleStatus.FAILED
    assert cycle.error_message == "Failed to schedule competitor watch cycle."


def test_failing_cycle_is_recorded_not_raised(store, http_client, monkeypatch) -> None:
    service = _service(store, http_client)

    def _boom() -> None:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(service, "initialize", _boom)

    cycle = service.run_tracked_cycle(trigger=WatchCycleTrigger.CLI)

    assert cycle.status == WatchCycleStatus.FAILED
    assert cycle.error_message == "RuntimeError: database unavailable"
    assert cycle.finished_at is not None
    assert service.is_running is False


def test_tracked_ciks_merge_watchlist_and_entities(store, http_client) -> None:
    watchlist = Watchlist(
        entities=(
            EntityConfig(name="Camden Property Trust", keywords=("camden",), cik=CAMDEN_CIK),
            EntityConfig(name="AvalonBay", keywords=("avalon",), cik="0000915912"),
            EntityConfig(name="Dormant REIT", keywords=("dormant",), cik="0000000003", active=False),
        ),
        sec_ciks=(CAMDEN_CIK, "0000000001"),
    )
    service = _service(store, http_client, watchlist=watchlist)
    service.initialize()

    assert service.tracked_ciks() == [CAMDEN_CIK, "0000000001", "0000915912"]


def test_dashboard_data(store, http_client, sources) -> None:
    service = _service(store, http_client)
    service.run_full_cycle()

    dashboard = service.get_dashboard_data()

    assert dashboard.total_signals == 4
    assert dashboard.competitor_matches == 3
    assert dashboard.high_priority == 3
    assert [signal.priority for signal in dashboard.high_priority_signals] == [9, 8, 8]
    assert dashboard.signals_by_type == {"permit": 2, "agenda": 1, "sec_filing": 1}
    assert dashboard.signals_by_jurisdiction == {"tn_nashville": 3, "SEC": 1}
    assert dashboard.signals_by_competitor == {"Camden Property Trust": 2, "Greystar": 1}
    assert dashboard.jurisdictions_active == 1
    assert dashboard.competitors_tracked == 2
    assert len(dashboard.recent_analyses) == 3


def test_thread_executor_runs_task_in_background() -> None:
    done = threading.Event()
    received = []

    def _task(value: int) -> None:
        received.append((value, threading.current_thread().name))
        done.set()

    ThreadTaskExecutor().submit(_task, 7)

    assert done.wait(timeout=5)
    assert received == [(7, "competitor-watch-cycle")]


def test_deactivated_entities_are_not_matched(store, http_client, sources) -> None:
    service = _service(store, http_client)
    service.initialize()
    for entity in store.list_entities():
        store.update_entity(entity.id, {"active": False})

    result = service.run_full_cycle()

    assert result.scrape.total.new == 4
    assert {signal.competitor_match for signal in store.list_signals()} == {None}
    assert result.analysis.analyzed == 0
    assert result.analysis.skipped_no_match == 4


def test_datasets_of_other_types_are_skipped(store, http_client, sources) -> None:
    [jurisdiction] = WATCHLIST.jurisdictions
    open_data = DatasetConfig(
        type="socrata",
        label="Open Data Permits",
        url="https://data.example.gov/resource/permits.json",
    )
    watchlist = replace(
        WATCHLIST,
        jurisdictions=(replace(jurisdiction, datasets=jurisdiction.datasets + (open_data,)),),
    )

    result = _service(store, http_client, watchlist=watchlist).run_full_cycle()

    assert result.scrape.failed_sources == 0
    assert (result.scrape.permits.found, result.scrape.permits.new) == (3, 2)
    assert not any(call["url"].startswith("https://data.example.gov") for call in sources.calls)
