"""Profile, sector and leaderboard routes."""

from fastapi import APIRouter, Body, Request

from ...db.repositories import ActivityLogRepository, ProfileRepository, SectorRepository
from ...errors import NotionError
from ...models.gamification import Accessory, Profile, Role, Sector
from ...services.notion_sync import NotionSync

router = APIRouter(tags=["profiles"])


def get_db(request: Request):
    """Get the database path from app state."""
    return request.app.state.db_path


def _profile_view(profile: Profile) -> dict:
    info = profile.level_info
    return {
        "id": profile.id,
        **profile.to_dict(),
        "level_title": info.level.title,
        "level_progress": round(info.progress, 1),
        "next_level_xp": info.next_level.min_xp if info.next_level else None,
        "accessory": profile.accessory.value,
    }


@router.get("/profiles")
async def list_profiles(request: Request):
    profiles = await ProfileRepository(get_db(request)).list_all()
    return {"profiles": [_profile_view(p) for p in profiles]}


@router.post("/profiles")
async def create_profile(request: Request, payload: dict = Body(...)):
    """Create a profile and mirror it into Notion when configured."""
    if not payload.get("name"):
        return {"error": "Name is required"}
    try:
        profile = Profile(
            name=payload["name"],
            email=payload.get("email", ""),
            role=Role(payload.get("role") or "member"),
            sector_id=payload.get("sector_id"),
        )
    except ValueError as e:
        return {"error": str(e)}

    repo = ProfileRepository(get_db(request))
    profile.id = await repo.create(profile)
    try:
        await NotionSync(get_db(request)).sync_profile(profile)
    except NotionError as e:
        return {**_profile_view(profile), "notion_error": str(e)}
    return _profile_view(profile)


@router.get("/profiles/leaderboard")
async def leaderboard(request: Request, limit: int = 10):
    profiles = await ProfileRepository(get_db(request)).leaderboard(limit)
    return {
        "leaderboard": [
            {"rank": i + 1, "id": p.id, "name": p.name, "total_xp": p.total_xp, "level": p.level}
            for i, p in enumerate(profiles)
        ]
    }


@router.get("/profiles/{profile_id}")
async def get_profile(request: Request, profile_id: int):
    profile = await ProfileRepository(get_db(request)).get(profile_id)
    if not profile:
        return {"error": "Profile not found"}
    activity = await ActivityLogRepository(get_db(request)).list_recent(profile_id, limit=10)
    return {**_profile_view(profile), "activity": [a.to_dict() for a in activity]}


@router.post("/profiles/{profile_id}/avatar")
async def equip_accessory(request: Request, profile_id: int, payload: dict = Body(...)):
    """Equip an avatar accessory if the member's level allows it."""
    repo = ProfileRepository(get_db(request))
    profile = await repo.get(profile_id)
    if not profile:
        return {"error": "Profile not found"}
    try:
        accessory = Accessory(payload.get("accessory", ""))
    except ValueError:
        return {"error": f"Unknown accessory: {payload.get('accessory')}"}
    if not profile.equip(accessory):
        return {"error": f"{accessory.value} unlocks at a higher level"}
    await repo.update(profile)
    return {"success": True, "avatar_url": profile.avatar_url}


@router.get("/sectors")
async def list_sectors(request: Request, active_only: bool = False):
    sectors = await SectorRepository(get_db(request)).list_all(active_only)
    return {"sectors": [{"id": s.id, **s.to_dict()} for s in sectors]}


@router.post("/sectors")
async def create_sector(request: Request, payload: dict = Body(...)):
    if not payload.get("name"):
        return {"error": "Name is required"}
    sector = Sector(name=payload["name"])
    sector.id = await SectorRepository(get_db(request)).create(sector)
    try:
        await NotionSync(get_db(request)).sync_sector(sector)
    except NotionError as e:
        return {"id": sector.id, **sector.to_dict(), "notion_error": str(e)}
    return {"id": sector.id, **sector.to_dict()}
