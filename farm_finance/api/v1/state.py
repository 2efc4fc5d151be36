"""POST /v1/state/save, /v1/state/load - Savegame persistence"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farm_finance.api.dependencies import get_context
from farm_finance.api.v1.schemas import StateRequest, StateResponse
from farm_finance.domain.context import EngineContext
from farm_finance.domain.exceptions import CorruptSaveError
from farm_finance.infrastructure.database.repositories import StateRepository
from farm_finance.infrastructure.database.session import get_db

router = APIRouter()


def state_counts(slot: str, context: EngineContext) -> StateResponse:
    history = context.credit_history
    return StateResponse(
        slot=slot,
        deals=len(context.finance_manager.deals),
        listings=len(context.sale_manager.listings),
        credit_entries=sum(len(history.get_entries(farm_id)) for farm_id in history.farm_ids()),
    )


@router.post("/state/save", response_model=StateResponse)
def save_state(body: StateRequest, db: Session = Depends(get_db), context: EngineContext = Depends(get_context)):
    """Snapshot deals, listings, credit history and statistics into a save slot"""
    try:
        StateRepository(db).save_snapshot(context, body.slot)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Save failed: {e}", extra={"slot": body.slot})
        raise HTTPException(status_code=500, detail="Save failed")

    logging.info("Engine state saved", extra={"slot": body.slot})
    return state_counts(body.slot, context)


@router.post("/state/load", response_model=StateResponse)
def load_state(body: StateRequest, db: Session = Depends(get_db), context: EngineContext = Depends(get_context)):
    """Replace the running engine state with a save slot"""
    try:
        loaded = StateRepository(db).load_snapshot(context, body.slot)
    except CorruptSaveError as e:
        logging.error(f"Load failed: {e}", extra={"slot": body.slot})
        raise HTTPException(status_code=422, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Load failed: {e}", extra={"slot": body.slot})
        raise HTTPException(status_code=500, detail="Load failed")

    if not loaded:
        raise HTTPException(status_code=404, detail="Save slot not found")

    logging.info("Engine state loaded", extra={"slot": body.slot})
    return state_counts(body.slot, context)
