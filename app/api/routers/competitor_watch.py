"""
app/api/routers/competitor_watch.py

Competitor watch endpoints: dashboard, signal queries, watchlist edits
and the asynchronous full-cycle trigger.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from app.schemas.competitor_watch import (
    AnalysisResponse,
    CycleAcceptedResponse,
    CycleStatusResponse,
    DashboardResponse,
    DashboardSummary,
    EntityResponse,
    EntityUpdateRequest,
    JurisdictionResponse,
    JurisdictionUpdateRequest,
    ScrapeJobResponse,
    ScrapeRequest,
    SignalResponse,
)
from app.scraping.helpers import utc_now
from app.services.competitor_watch_service import (
    CompetitorWatchService,
    FastAPIBackgroundTaskExecutor,
    get_competitor_watch_service,
)
from db.models.watch_cycle import WatchCycleTrigger

router = APIRouter(prefix="/competitor", tags=["competitor-watch"])


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> DashboardResponse:
    data = service.get_dashboard_data()
    return DashboardResponse(
        summary=DashboardSummary(
            total_signals=data.total_signals,
            competitor_matches=data.competitor_matches,
            high_priority=data.high_priority,
            jurisdictions_active=data.jurisdictions_active,
            competitors_tracked=data.competitors_tracked,
        ),
        signals_by_type=data.signals_by_type,
        signals_by_jurisdiction=data.signals_by_jurisdiction,
        signals_by_competitor=data.signals_by_competitor,
        high_priority_signals=[SignalResponse.model_validate(item) for item in data.high_priority_signals],
        recent_analyses=[AnalysisResponse.model_validate(item) for item in data.recent_analyses],
        competitors=[EntityResponse.model_validate(item) for item in data.competitors],
        jurisdictions=[JurisdictionResponse.model_validate(item) for item in data.jurisdictions],
    )


@router.get("/signals", response_model=list[SignalResponse])
def list_signals(
    jurisdiction: str | None = Query(default=None, description="Jurisdiction key filter"),
    signal_type: str | None = Query(default=None, alias="type", description="permit, sec_filing or agenda"),
    competitor: str | None = Query(default=None, description="Matched competitor name filter"),
    days: int | None = Query(default=None, ge=1, le=365, description="Only signals from the last N days"),
    limit: int = Query(default=50, ge=1, le=500),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> list[SignalResponse]:
    since = utc_now() - timedelta(days=days) if days is not None else None
    signals = service.store.list_signals(
        jurisdiction=jurisdiction,
        signal_type=signal_type,
        competitor=competitor,
        since=since,
        limit=limit,
    )
    return [SignalResponse.model_validate(signal) for signal in signals]


@router.get("/entities", response_model=list[EntityResponse])
def list_entities(
    active: bool | None = Query(default=None),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> list[EntityResponse]:
    return [EntityResponse.model_validate(entity) for entity in service.store.list_entities(active=active)]


@router.patch("/entities/{entity_id}", response_model=EntityResponse)
def update_entity(
    entity_id: UUID,
    request: EntityUpdateRequest = Body(...),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> EntityResponse:
    changes = request.model_dump(exclude_unset=True)
    try:
        entity = service.store.update_entity(entity_id, changes)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Competitor entity name already exists: {changes.get('name')}",
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Competitor entity not found: {entity_id}",
        )
    return EntityResponse.model_validate(entity)


@router.get("/jurisdictions", response_model=list[JurisdictionResponse])
def list_jurisdictions(
    active: bool | None = Query(default=None),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> list[JurisdictionResponse]:
    return [
        JurisdictionResponse.model_validate(jurisdiction)
        for jurisdiction in service.store.list_jurisdictions(active=active)
    ]


@router.patch("/jurisdictions/{key}", response_model=JurisdictionResponse)
def update_jurisdiction(
    key: str,
    request: JurisdictionUpdateRequest = Body(...),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> JurisdictionResponse:
    try:
        jurisdiction = service.store.update_jurisdiction(key, request.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if jurisdiction is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Jurisdiction not found: {key}",
        )
    return JurisdictionResponse.model_validate(jurisdiction)


@router.get("/analyses", response_model=list[AnalysisResponse])
def list_analyses(
    competitor_id: str | None = Query(default=None, alias="competitorId"),
    limit: int = Query(default=20, ge=1, le=200),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> list[AnalysisResponse]:
    analyses = service.store.list_analyses(competitor_id=competitor_id, limit=limit)
    return [AnalysisResponse.model_validate(analysis) for analysis in analyses]


@router.post(
    "/scrape",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CycleAcceptedResponse,
)
def trigger_scrape(
    background_tasks: BackgroundTasks,
    request: ScrapeRequest | None = Body(default=None),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> CycleAcceptedResponse:
    cycle = service.trigger_cycle(
        executor=FastAPIBackgroundTaskExecutor(background_tasks),
        days_back=request.days_back if request is not None else None,
        trigger=WatchCycleTrigger.API,
    )
    return CycleAcceptedResponse(
        cycle_id=cycle.id,
        status=cycle.status,
        days_back=cycle.days_back,
        created_at=cycle.created_at,
    )


@router.get("/cycles/{cycle_id}", response_model=CycleStatusResponse)
def get_cycle(
    cycle_id: UUID,
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> CycleStatusResponse:
    cycle = service.store.get_cycle(cycle_id)
    if cycle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Watch cycle not found: {cycle_id}",
        )
    return CycleStatusResponse.model_validate(cycle)


@router.get("/jobs", response_model=list[ScrapeJobResponse])
def list_jobs(
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500),
    service: CompetitorWatchService = Depends(get_competitor_watch_service),
) -> list[ScrapeJobResponse]:
    jobs = service.store.list_jobs(limit=limit, status=status_filter)
    return [ScrapeJobResponse.model_validate(job) for job in jobs]
