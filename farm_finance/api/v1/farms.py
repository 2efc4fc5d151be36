"""PUT /v1/farms/{farm_id} - Register host farm state; GET /v1/farms/{farm_id}/statistics"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from farm_finance.api.dependencies import get_context
from farm_finance.api.v1.schemas import (
    FarmlandSchema,
    FarmResponse,
    FarmUpsertRequest,
    StatisticsResponse,
    VehicleSchema,
)
from farm_finance.domain.context import EngineContext
from farm_finance.domain.models import Farm, Farmland, OwnedVehicle
from farm_finance.infrastructure.host import InMemoryFarmHost

router = APIRouter()


@router.put("/farms/{farm_id}", response_model=FarmResponse)
def upsert_farm(farm_id: int, body: FarmUpsertRequest, context: EngineContext = Depends(get_context)):
    """
    Replace the host-side view of a farm.

    The in-memory host stands in for the game: funds, vehicles and land
    registered here are what the engine reads and mutates.
    """
    if not isinstance(context.host, InMemoryFarmHost):
        raise HTTPException(status_code=405, detail="Host does not accept farm updates")

    farm = context.host.upsert_farm(
        Farm(
            farm_id=farm_id,
            money=body.money,
            loan=body.loan,
            vehicles=[OwnedVehicle(**v.model_dump()) for v in body.vehicles],
            farmlands=[Farmland(**f.model_dump()) for f in body.farmlands],
            user_ids=list(body.user_ids),
        )
    )
    return FarmResponse(
        farm_id=farm.farm_id,
        money=farm.money,
        loan=farm.loan,
        vehicles=[VehicleSchema(**asdict(v)) for v in farm.vehicles],
        farmlands=[
            FarmlandSchema(farmland_id=f.farmland_id, name=f.name, price=f.price, area_ha=f.area_ha)
            for f in farm.farmlands
        ],
    )


@router.get("/farms/{farm_id}/statistics", response_model=StatisticsResponse)
def get_statistics(farm_id: int, context: EngineContext = Depends(get_context)):
    """Lifetime finance and sales counters for the dashboard"""
    stats = context.finance_manager.get_statistics(farm_id)
    return StatisticsResponse(farm_id=farm_id, **asdict(stats))
