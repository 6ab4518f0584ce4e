"""HTTP routes for the territory influence API."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from frontier_influence.api.runtime import ApiState
from frontier_influence.database import check_database_health
from frontier_influence.domain.enums import ControlLevel, InfluenceSource, TerritoryCategory
from frontier_influence.domain.models import (
    ActorID,
    FactionID,
    HistoryFilter,
    TerritoryID,
)
from frontier_influence.errors import (
    InvalidSource,
    TransientStoreFailure,
    UnknownFaction,
    UnknownTerritory,
)

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


@contextmanager
def influence_errors() -> Iterator[None]:
    """Translate core exceptions into HTTP responses."""
    try:
        yield
    except (UnknownTerritory, UnknownFaction) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (InvalidSource, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except TransientStoreFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="influence store unavailable"
        ) from exc


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ControlStateModel(_FromDomain):
    level: ControlLevel
    controlling_faction: str | None
    leading_value: float
    runner_up_value: float
    control_changed_at: datetime | None


class BenefitSetModel(_FromDomain):
    shop_discount: float
    reputation_gain_bonus: float
    crime_heat_reduction: float
    job_income_bonus: float


class TerritorySummaryModel(_FromDomain):
    id: str
    name: str
    category: TerritoryCategory
    strategic_value: int
    influence_by_faction: dict[str, float]
    control: ControlStateModel
    active_benefits: BenefitSetModel


class FactionOverviewModel(_FromDomain):
    faction_id: str
    dominated_count: int
    controlled_count: int
    disputed_count: int
    total_influence: float
    dominated_territories: list[str]
    territories: list[TerritorySummaryModel]


class InfluenceResultModel(_FromDomain):
    territory_id: str
    faction_id: str
    previous_value: float
    new_value: float
    requested_delta: float
    applied_delta: float
    event_id: int
    control: ControlStateModel
    transitioned: bool
    level_changed: bool


class InfluenceRecordModel(_FromDomain):
    id: int
    territory_id: str
    faction_id: str
    delta: float
    applied_delta: float
    resulting_value: float
    source: InfluenceSource
    actor_id: str | None
    recorded_at: datetime


class HistoryPageModel(_FromDomain):
    items: list[InfluenceRecordModel]
    total: int
    offset: int
    limit: int
    has_more: bool


class ContributionModel(_FromDomain):
    actor_id: str
    territory_id: str
    faction_id: str
    total_delta: float
    event_count: int


class DecayReportModel(_FromDomain):
    day: date
    territories_processed: int
    territories_skipped: int
    territories_failed: int
    adjustments: int
    failed_territories: list[str]
    cancelled: bool


class DecayStatusResponse(BaseModel):
    enabled: bool
    running: bool
    cron: str
    next_run_at: datetime
    last_run_at: datetime | None
    last_report: DecayReportModel | None


class InfluenceRequest(BaseModel):
    faction_id: str = Field(min_length=1)
    delta: float = Field(allow_inf_nan=False)
    source: InfluenceSource
    actor_id: str | None = None


class DonationRequest(BaseModel):
    faction_id: str = Field(min_length=1)
    actor_id: str = Field(min_length=1)
    gold: float = Field(gt=0, allow_inf_nan=False)


class DecayRunRequest(BaseModel):
    day: date | None = None


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "database": check_database_health(state.engine),
        "decay_cron": state.decay.cron,
        "decay_running": state.decay.is_running,
    }


@router.get("/territories", response_model=list[TerritorySummaryModel])
def list_territories(
    state: ApiStateDep,
    level: ControlLevel | None = None,
) -> list[TerritorySummaryModel]:
    with influence_errors():
        summaries = state.queries.list_territories(level=level)
    return [TerritorySummaryModel.model_validate(summary) for summary in summaries]


@router.get("/territories/{territory_id}", response_model=TerritorySummaryModel)
def get_territory(territory_id: str, state: ApiStateDep) -> TerritorySummaryModel:
    with influence_errors():
        summary = state.queries.get_territory(TerritoryID(territory_id))
    return TerritorySummaryModel.model_validate(summary)


@router.post("/territories/{territory_id}/influence", response_model=InfluenceResultModel)
def apply_influence(
    territory_id: str,
    request: InfluenceRequest,
    state: ApiStateDep,
) -> InfluenceResultModel:
    with influence_errors():
        result = state.influence.apply_influence(
            TerritoryID(territory_id),
            FactionID(request.faction_id),
            request.delta,
            request.source,
            ActorID(request.actor_id) if request.actor_id is not None else None,
        )
    return InfluenceResultModel.model_validate(result)


@router.post("/territories/{territory_id}/donations", response_model=InfluenceResultModel)
def donate(
    territory_id: str,
    request: DonationRequest,
    state: ApiStateDep,
) -> InfluenceResultModel:
    with influence_errors():
        result = state.influence.donate_for_influence(
            ActorID(request.actor_id),
            TerritoryID(territory_id),
            FactionID(request.faction_id),
            request.gold,
        )
    return InfluenceResultModel.model_validate(result)


@router.get("/territories/{territory_id}/benefits", response_model=BenefitSetModel)
def get_alignment_benefits(
    territory_id: str,
    faction_id: Annotated[str, Query(min_length=1)],
    state: ApiStateDep,
) -> BenefitSetModel:
    with influence_errors():
        benefits = state.queries.get_alignment_benefits(
            FactionID(faction_id), TerritoryID(territory_id)
        )
    return BenefitSetModel.model_validate(benefits)


@router.get("/territories/{territory_id}/history", response_model=list[InfluenceRecordModel])
def recent_history(
    territory_id: str,
    state: ApiStateDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[InfluenceRecordModel]:
    with influence_errors():
        records = state.queries.recent_history(TerritoryID(territory_id), limit)
    return [InfluenceRecordModel.model_validate(record) for record in records]


@router.get("/history", response_model=HistoryPageModel)
def get_history(
    state: ApiStateDep,
    territory_id: str | None = None,
    faction_id: str | None = None,
    actor_id: str | None = None,
    source: InfluenceSource | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> HistoryPageModel:
    criteria = HistoryFilter(
        territory_id=TerritoryID(territory_id) if territory_id else None,
        faction_id=FactionID(faction_id) if faction_id else None,
        actor_id=ActorID(actor_id) if actor_id else None,
        source=source,
        since=since,
        until=until,
    )
    with influence_errors():
        page = state.queries.get_history(criteria, offset=offset, limit=limit)
    return HistoryPageModel.model_validate(page)


@router.get("/factions", response_model=list[str])
def list_factions(state: ApiStateDep) -> list[str]:
    with influence_errors():
        return [str(faction_id) for faction_id in state.queries.list_factions()]


@router.get("/factions/{faction_id}/overview", response_model=FactionOverviewModel)
def get_faction_overview(faction_id: str, state: ApiStateDep) -> FactionOverviewModel:
    with influence_errors():
        overview = state.queries.get_faction_overview(FactionID(faction_id))
    return FactionOverviewModel.model_validate(overview)


@router.get("/factions/{faction_id}/territories", response_model=list[TerritorySummaryModel])
def territories_controlled_by(faction_id: str, state: ApiStateDep) -> list[TerritorySummaryModel]:
    with influence_errors():
        summaries = state.queries.territories_controlled_by(FactionID(faction_id))
    return [TerritorySummaryModel.model_validate(summary) for summary in summaries]


@router.get("/actors/{actor_id}/contributions", response_model=list[ContributionModel])
def get_contributions(
    actor_id: str,
    state: ApiStateDep,
    territory_id: str | None = None,
) -> list[ContributionModel]:
    with influence_errors():
        contributions = state.queries.get_contributions(
            ActorID(actor_id),
            territory_id=TerritoryID(territory_id) if territory_id else None,
        )
    return [ContributionModel.model_validate(item) for item in contributions]


@router.post("/decay/run", response_model=DecayReportModel)
async def run_decay(state: ApiStateDep, request: DecayRunRequest | None = None) -> DecayReportModel:
    day = request.day if request is not None else None
    report = await state.decay.run_now(day)
    return DecayReportModel.model_validate(report)


@router.get("/decay/status", response_model=DecayStatusResponse)
async def decay_status(state: ApiStateDep) -> DecayStatusResponse:
    report = state.decay.last_report
    return DecayStatusResponse(
        enabled=state.settings.decay_enabled,
        running=state.decay.is_running,
        cron=state.decay.cron,
        next_run_at=state.decay.next_run_at(),
        last_run_at=state.decay.last_run_at,
        last_report=DecayReportModel.model_validate(report) if report is not None else None,
    )
