"""
inkwell.api.routes.currency — Ink Drop balance, history, purchase & tips
=========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from inkwell.api.deps import get_config, get_current_user_id, get_engine
from inkwell.config import InkwellConfig
from inkwell.database.engine import run_db
from inkwell.engine.dates import ensure_utc
from inkwell.services import ink_drop_service

router = APIRouter(prefix="/currency", tags=["currency"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PurchaseBody(BaseModel):
    amount: int


class TipBody(BaseModel):
    recipient_user_id: int = Field(alias="recipientUserId")
    amount: int


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@router.get("/balance")
async def balance(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    value = await run_db(ink_drop_service.get_ink_drops_balance, engine, user_id)
    return {"success": True, "balance": value}


@router.get("/transactions")
async def transactions(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    rows = await run_db(ink_drop_service.get_transactions, engine, user_id)
    return {
        "success": True,
        "transactions": [
            {
                "id": tx.id,
                "amount": tx.amount,
                "source": tx.source,
                "timestamp": ensure_utc(tx.timestamp).isoformat(),
                "senderId": str(tx.sender_id) if tx.sender_id else None,
                "recipientId": str(tx.recipient_id) if tx.recipient_id else None,
            }
            for tx in rows
        ],
    }


@router.get("/rewards-history")
async def rewards_history(
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    data = await run_db(ink_drop_service.get_rewards_history, engine, user_id)
    for reward in data["rewards"]:
        reward["date"] = ensure_utc(reward["date"]).isoformat()
    return {"success": True, "data": data}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
@router.post("/purchase")
async def purchase(
    body: PurchaseBody,
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    new_balance = await run_db(
        ink_drop_service.purchase_ink_drops, engine, user_id, body.amount,
    )
    return {"success": True, "balance": new_balance}


@router.post("/tip")
async def tip(
    body: TipBody,
    user_id: int = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
    cfg: InkwellConfig = Depends(get_config),
):
    result = await run_db(
        ink_drop_service.send_tip, engine, user_id, body.recipient_user_id, body.amount,
        fee_percent=cfg.tip_service_fee_percent,
    )
    return {
        "success": True,
        "senderBalance": result.sender_balance,
        "serviceFee": result.service_fee,
        "authorReceived": result.author_received,
    }
