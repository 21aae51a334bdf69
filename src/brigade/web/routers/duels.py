"""Duel routes."""

from fastapi import APIRouter, Body, Request

from ...db.repositories import DuelRepository
from ...errors import DuelStateError
from ...models.gamification import Duel
from ...services.duels import DuelService

router = APIRouter(prefix="/duels", tags=["duels"])


def get_db(request: Request):
    """Get the database path from app state."""
    return request.app.state.db_path


def _view(duel: Duel) -> dict:
    return {"id": duel.id, **duel.to_dict()}


@router.get("")
async def list_duels(request: Request, user_id: int):
    duels = await DuelRepository(get_db(request)).list_for_user(user_id)
    return {"duels": [_view(d) for d in duels]}


@router.post("")
async def challenge(request: Request, payload: dict = Body(...)):
    try:
        duel = await DuelService(get_db(request)).challenge(
            int(payload["challenger_id"]),
            int(payload["opponent_id"]),
            int(payload["template_id"]),
            int(payload.get("wager", 0)),
        )
    except KeyError as e:
        return {"error": f"Missing field: {e.args[0]}"}
    except (DuelStateError, ValueError) as e:
        return {"error": str(e)}
    return _view(duel)


@router.post("/{duel_id}/accept")
async def accept(request: Request, duel_id: int, payload: dict = Body(...)):
    try:
        duel = await DuelService(get_db(request)).accept(duel_id, int(payload.get("user_id", 0)))
    except DuelStateError as e:
        return {"error": str(e)}
    return _view(duel)


@router.post("/{duel_id}/decline")
async def decline(request: Request, duel_id: int, payload: dict = Body(...)):
    try:
        duel = await DuelService(get_db(request)).decline(duel_id, int(payload.get("user_id", 0)))
    except DuelStateError as e:
        return {"error": str(e)}
    return _view(duel)


@router.post("/{duel_id}/progress")
async def progress(request: Request, duel_id: int, payload: dict = Body(...)):
    """Report a participant's progress (0-100) and current score."""
    try:
        duel = await DuelService(get_db(request)).record_progress(
            duel_id,
            int(payload.get("user_id", 0)),
            float(payload.get("progress", 0)),
            int(payload.get("score", 0)),
        )
    except (DuelStateError, ValueError) as e:
        return {"error": str(e)}
    return _view(duel)
