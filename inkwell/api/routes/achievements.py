"""
inkwell.api.routes.achievements — Achievement catalog with user progress
=========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from inkwell.api.deps import get_current_user_id, get_engine
from inkwell.database.engine import run_db
from inkwell.services import achievement_service

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("")
async def my_achievements(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    items = await run_db(achievement_service.list_achievements, engine, user_id)
    return {"achievements": items}
