"""Duel lifecycle and wager settlement."""

import logging
from pathlib import Path

from ..db.repositories import ActivityLogRepository, DuelRepository, ProfileRepository
from ..errors import DuelStateError
from ..models.gamification import ActivityLog, Duel, DuelStatus

logger = logging.getLogger(__name__)


class DuelService:
    """Invite, accept, decline, track and settle duels."""

    def __init__(self, db_path: Path | None = None):
        self.duels = DuelRepository(db_path)
        self.profiles = ProfileRepository(db_path)
        self.activity = ActivityLogRepository(db_path)

    async def _get(self, duel_id: int) -> Duel:
        duel = await self.duels.get(duel_id)
        if duel is None:
            raise DuelStateError(f"Duel {duel_id} not found")
        return duel

    async def challenge(
        self, challenger_id: int, opponent_id: int, template_id: int, wager: int = 0
    ) -> Duel:
        """Invite another member to a duel."""
        if challenger_id == opponent_id:
            raise DuelStateError("You cannot duel yourself")
        if wager < 0:
            raise DuelStateError("Wager must not be negative")

        challenger = await self.profiles.get(challenger_id)
        opponent = await self.profiles.get(opponent_id)
        if challenger is None or opponent is None:
            raise DuelStateError("Both duel participants must exist")
        if wager > challenger.total_xp:
            raise DuelStateError("Wager is larger than the challenger's XP")

        duel = Duel(
            challenger_id=challenger_id,
            opponent_id=opponent_id,
            template_id=template_id,
            wager=wager,
        )
        await self.duels.create(duel)
        logger.info("Duel %s: %s challenged %s", duel.id, challenger.name, opponent.name)
        return duel

    async def _respond(self, duel_id: int, user_id: int, new_status: DuelStatus) -> Duel:
        duel = await self._get(duel_id)
        if user_id != duel.opponent_id:
            raise DuelStateError("Only the invited member can answer a duel")
        if not await self.duels.transition(duel_id, DuelStatus.PENDING, new_status):
            raise DuelStateError(f"Duel {duel_id} is no longer pending")
        return await self._get(duel_id)

    async def accept(self, duel_id: int, user_id: int) -> Duel:
        return await self._respond(duel_id, user_id, DuelStatus.ACTIVE)

    async def decline(self, duel_id: int, user_id: int) -> Duel:
        return await self._respond(duel_id, user_id, DuelStatus.DECLINED)

    async def active_for(self, user_id: int, template_id: int) -> list[Duel]:
        return [
            d
            for d in await self.duels.list_for_user(user_id)
            if d.status == DuelStatus.ACTIVE and d.template_id == template_id
        ]

    async def record_progress(
        self, duel_id: int, user_id: int, progress: float, score: int = 0
    ) -> Duel:
        """Store a participant's progress; settle once both reach 100%."""
        duel = await self._get(duel_id)
        try:
            side = duel.side_of(user_id)
        except ValueError as e:
            raise DuelStateError(str(e)) from e
        if not await self.duels.record_progress(duel_id, side, progress, score):
            raise DuelStateError(f"Duel {duel_id} is not active")

        duel = await self._get(duel_id)
        if duel.both_finished:
            await self.settle(duel)
            duel = await self._get(duel_id)
        return duel

    async def settle(self, duel: Duel) -> bool:
        """Pay out the wager. Returns False if the duel was already settled."""
        winner_id = duel.decide_winner()
        if not await self.duels.complete(duel.id, winner_id):
            return False

        if winner_id is None or duel.wager == 0:
            logger.info("Duel %s ended without a payout", duel.id)
            return True

        loser_id = duel.loser_of(winner_id)
        winner = await self.profiles.get(winner_id)
        loser = await self.profiles.get(loser_id)
        if winner is not None:
            winner.add_xp(duel.wager)
            await self.profiles.update(winner)
            await self.activity.create(
                ActivityLog(
                    user_id=winner_id,
                    action_type="duel_won",
                    description=f"Won duel #{duel.id}",
                    xp_earned=duel.wager,
                )
            )
        if loser is not None:
            loser.add_xp(-duel.wager)
            await self.profiles.update(loser)
            await self.activity.create(
                ActivityLog(
                    user_id=loser_id,
                    action_type="duel_lost",
                    description=f"Lost duel #{duel.id}",
                    xp_earned=-duel.wager,
                )
            )
        logger.info("Duel %s won by profile %s (%d XP)", duel.id, winner_id, duel.wager)
        return True
