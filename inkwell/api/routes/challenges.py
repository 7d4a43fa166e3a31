"""
inkwell.api.routes.challenges — Daily challenge endpoints
==========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from inkwell.api.deps import get_current_user_id, get_engine
from inkwell.database.engine import run_db
from inkwell.services import challenge_service

router = APIRouter(prefix="/challenges", tags=["challenges"])


class TrackProgressBody(BaseModel):
    action_type: str = Field(alias="actionType")


@router.get("/today")
async def today(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    challenge = await run_db(
        challenge_service.get_or_create_today_challenge, engine, user_id,
    )
    return {"challenge": challenge_service.challenge_snapshot(challenge)}


@router.post("/track-progress")
async def track_progress(
    body: TrackProgressBody,
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    result = await run_db(
        challenge_service.track_progress, engine, user_id, body.action_type,
    )
    return {
        "progressUpdated": result.progress_updated,
        "currentProgress": result.current_progress,
        "challengeCompleted": result.challenge_completed,
        "inkDropsEarned": result.ink_drops_earned,
    }
