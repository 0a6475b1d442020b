from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import competitor_watch_router
from app.domain.competitor_watch import AnalysisInput, SignalInput
from app.scraping.config.models import EntityConfig, JurisdictionConfig, Watchlist
from app.services.competitor_watch_service import (
    CompetitorWatchService,
    get_competitor_watch_service,
)
from conftest import FIXED_NOW, fixed_clock, make_settings
from db.models.competitor_signal import SignalType
from db.models.scrape_job import ScrapeJobStatus
from enrichment import EnrichmentService
from enrichment.adapter import MockLLMAdapter

WATCHLIST = Watchlist(
    jurisdictions=(
        JurisdictionConfig(key="tn_nashville", label="Nashville-Davidson", state="TN"),
        JurisdictionConfig(key="tn_franklin", label="Franklin", state="TN"),
    ),
    entities=(
        EntityConfig(name="Camden Property Trust", keywords=("camden",)),
        EntityConfig(name="Greystar", keywords=("greystar",)),
    ),
)


def _seed_signal(store, source_id: str, **overrides) -> None:
    values = {
        "type": SignalType.PERMIT,
        "source_id": source_id,
        "title": f"Permit {source_id}",
        "when_iso": FIXED_NOW - timedelta(days=1),
        "priority": 5,
        "source": "Building Permits",
        "jurisdiction": "tn_nashville",
    }
    values.update(overrides)
    store.insert_signal(SignalInput(**values))


@pytest.fixture()
def service(store, http_client) -> CompetitorWatchService:
    service = CompetitorWatchService(
        store=store,
        settings=make_settings(),
        watchlist=WATCHLIST,
        enrichment=EnrichmentService(MockLLMAdapter()),
        http=http_client,
        clock=fixed_clock,
        sleep=lambda _seconds: None,
    )
    service.initialize()
    _seed_signal(store, "p-1", competitor_match="Greystar", confidence=0.8, priority=8)
    _seed_signal(store, "p-2", when_iso=FIXED_NOW - timedelta(days=3))
    _seed_signal(
        store,
        "a-1",
        type=SignalType.AGENDA,
        source="Planning Commission",
        jurisdiction="tn_franklin",
        priority=7,
        when_iso=FIXED_NOW - timedelta(days=2),
    )
    return service


@pytest.fixture()
def client(service) -> TestClient:
    app = FastAPI()
    app.include_router(competitor_watch_router)
    app.dependency_overrides[get_competitor_watch_service] = lambda: service
    return TestClient(app)


class TestSignals:
    def test_list_uses_camel_case(self, client) -> None:
        response = client.get("/competitor/signals")

        assert response.status_code == 200
        body = response.json()
        assert [item["sourceId"] for item in body] == ["p-1", "a-1", "p-2"]
        first = body[0]
        assert first["competitorMatch"] == "Greystar"
        assert first["analysisAttempts"] == 0
        assert "whenIso" in first
        assert "source_id" not in first

    def test_filters(self, client) -> None:
        by_type = client.get("/competitor/signals", params={"type": "agenda"}).json()
        by_competitor = client.get("/competitor/signals", params={"competitor": "Greystar"}).json()
        by_jurisdiction = client.get("/competitor/signals", params={"jurisdiction": "tn_nashville"}).json()

        assert [item["sourceId"] for item in by_type] == ["a-1"]
        assert [item["sourceId"] for item in by_competitor] == ["p-1"]
        assert {item["sourceId"] for item in by_jurisdiction} == {"p-1", "p-2"}
        assert len(client.get("/competitor/signals", params={"limit": 1}).json()) == 1

    def test_invalid_limit(self, client) -> None:
        assert client.get("/competitor/signals", params={"limit": 0}).status_code == 422


class TestEntities:
    def test_list_in_declared_order(self, client) -> None:
        body = client.get("/competitor/entities").json()
        assert [item["name"] for item in body] == ["Camden Property Trust", "Greystar"]

    def test_update(self, client) -> None:
        greystar = client.get("/competitor/entities").json()[1]

        response = client.patch(
            f"/competitor/entities/{greystar['id']}",
            json={"keywords": ["greystar", "gsre"], "active": False},
        )

        assert response.status_code == 200
        assert response.json()["keywords"] == ["greystar", "gsre"]
        assert response.json()["active"] is False
        active = client.get("/competitor/entities", params={"active": "true"}).json()
        assert [item["name"] for item in active] == ["Camden Property Trust"]

    def test_duplicate_name_conflicts(self, client) -> None:
        greystar = client.get("/competitor/entities").json()[1]

        response = client.patch(
            f"/competitor/entities/{greystar['id']}",
            json={"name": "Camden Property Trust"},
        )

        assert response.status_code == 409

    def test_unknown_entity(self, client) -> None:
        response = client.patch(f"/competitor/entities/{uuid.uuid4()}", json={"active": False})
        assert response.status_code == 404

    def test_malformed_id(self, client) -> None:
        assert client.patch("/competitor/entities/not-a-uuid", json={"active": False}).status_code == 422


class TestJurisdictions:
    def test_update_accepts_camel_case(self, client) -> None:
        response = client.patch("/competitor/jurisdictions/tn_franklin", json={"scrapeFrequency": 60})

        assert response.status_code == 200
        assert response.json()["scrapeFrequency"] == 60
        assert response.json()["key"] == "tn_franklin"

    def test_deactivate(self, client) -> None:
        client.patch("/competitor/jurisdictions/tn_franklin", json={"active": False})

        active = client.get("/competitor/jurisdictions", params={"active": "true"}).json()
        assert [item["key"] for item in active] == ["tn_nashville"]

    def test_unknown_jurisdiction(self, client) -> None:
        assert client.patch("/competitor/jurisdictions/tx_austin", json={"active": False}).status_code == 404

    def test_invalid_frequency(self, client) -> None:
        response = client.patch("/competitor/jurisdictions/tn_franklin", json={"scrapeFrequency": 0})
        assert response.status_code == 422


class TestCycles:
    def test_trigger_and_poll(self, client) -> None:
        response = client.post("/competitor/scrape", json={"daysBack": 14})

        assert response.status_code == 202
        accepted = response.json()
        assert accepted["status"] == "queued"
        assert accepted["daysBack"] == 14

        cycle = client.get(f"/competitor/cycles/{accepted['cycleId']}").json()
        assert cycle["status"] == "done"
        assert cycle["trigger"] == "api"
        assert cycle["report"].startswith("COMPETITOR WATCH REPORT")
        assert cycle["resultPayload"]["analysis"]["analyzed"] == 1

    def test_trigger_without_body_uses_default_window(self, client) -> None:
        response = client.post("/competitor/scrape")

        assert response.status_code == 202
        assert response.json()["daysBack"] == 30

    def test_invalid_window(self, client) -> None:
        assert client.post("/competitor/scrape", json={"daysBack": 0}).status_code == 422

    def test_unknown_cycle(self, client) -> None:
        assert client.get(f"/competitor/cycles/{uuid.uuid4()}").status_code == 404


def test_dashboard(client, store) -> None:
    [greystar_signal] = store.list_signals(competitor="Greystar")
    store.save_analysis(
        AnalysisInput(
            signal_id=greystar_signal.id,
            competitor_id="Greystar",
            analysis="New supply downtown.",
            impact="high",
            confidence=0.7,
            recommendations=["Review concessions at nearby properties"],
            model="mock",
        )
    )

    body = client.get("/competitor/dashboard").json()

    assert body["summary"] == {
        "totalSignals": 3,
        "competitorMatches": 1,
        "highPriority": 2,
        "jurisdictionsActive": 2,
        "competitorsTracked": 2,
    }
    assert body["signalsByType"] == {"permit": 2, "agenda": 1}
    assert body["signalsByCompetitor"] == {"Greystar": 1}
    assert [item["sourceId"] for item in body["highPrioritySignals"]] == ["p-1", "a-1"]
    assert body["recentAnalyses"][0]["competitorId"] == "Greystar"
    assert [item["name"] for item in body["competitors"]] == ["Camden Property Trust", "Greystar"]


def test_analyses_filter(client, store) -> None:
    [greystar_signal] = store.list_signals(competitor="Greystar")
    store.save_analysis(
        AnalysisInput(
            signal_id=greystar_signal.id,
            competitor_id="Greystar",
            analysis="New supply downtown.",
            impact="medium",
            confidence=0.6,
            recommendations=[],
        )
    )

    assert len(client.get("/competitor/analyses", params={"competitorId": "Greystar"}).json()) == 1
    assert client.get("/competitor/analyses", params={"competitorId": "Camden Property Trust"}).json() == []


def test_jobs_filter(client, store) -> None:
    job = store.create_job(source="Building Permits", query={"jurisdiction": "tn_nashville"}, started_at=FIXED_NOW)
    store.finish_job(
        job.id,
        status=ScrapeJobStatus.DONE,
        finished_at=FIXED_NOW,
        execution_time_ms=120,
        records_found=4,
        records_new=2,
    )
    store.create_job(source="SEC EDGAR", query=None, started_at=FIXED_NOW)

    done = client.get("/competitor/jobs", params={"status": "done"}).json()

    assert [item["source"] for item in done] == ["Building Permits"]
    assert done[0]["recordsFound"] == 4
    assert done[0]["executionTimeMs"] == 120
    assert len(client.get("/competitor/jobs").json()) == 2
