# backend/app/services/challenges/leaderboard.py
# Classement d'un challenge : tri (économies desc, points desc) et rang d'un utilisateur.

from __future__ import annotations

from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import NotFoundError
from app.models.challenge_participant import LeaderboardEntry, UserRank

LEADERBOARD_SORT = [("emission_saved", -1), ("points", -1)]


def sort_key(participant: dict[str, Any]) -> tuple[float, int]:
    """Clé de tri ascendante équivalente à (économies desc, points desc)."""
    return (-float(participant.get("emission_saved", 0)), -int(participant.get("points", 0)))


def rank_participants(participants: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Trie des participants et leur attribue un rang.

    Description:
        Rang = 1 + nombre de participants strictement devant : les ex aequo
        (mêmes économies et mêmes points) partagent le même rang.
    """
    ordered = sorted(participants, key=sort_key)
    ranked: list[dict[str, Any]] = []
    for index, participant in enumerate(ordered):
        if index and sort_key(participant) == sort_key(ordered[index - 1]):
            rank = ranked[-1]["rank"]
        else:
            rank = index + 1
        ranked.append({**participant, "rank": rank})
    return ranked


def ahead_filter(challenge_id: ObjectId, emission_saved: float, points: int) -> dict[str, Any]:
    """Filtre des participants actifs strictement devant (économies, points)."""
    return {
        "challenge_id": challenge_id,
        "status": "active",
        "$or": [
            {"emission_saved": {"$gt": emission_saved}},
            {"emission_saved": emission_saved, "points": {"$gt": points}},
        ],
    }


class LeaderboardService:
    """Lecture du classement d'un challenge."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def get_leaderboard(self, challenge_id: ObjectId, limit: int = 10) -> list[LeaderboardEntry]:
        """Top `limit` des participants actifs, avec nom d'utilisateur."""
        cursor = (
            self.db.challenge_participants.find({"challenge_id": challenge_id, "status": "active"})
            .sort(LEADERBOARD_SORT)
            .limit(limit)
        )
        participants = rank_participants(await cursor.to_list(length=limit))

        user_ids = [p["user_id"] for p in participants]
        users = await self.db.users.find({"_id": {"$in": user_ids}}).to_list(length=None)
        names = {u["_id"]: u.get("name") for u in users}

        return [
            LeaderboardEntry(
                rank=p["rank"],
                user_id=p["user_id"],
                name=names.get(p["user_id"]),
                emission_saved=p.get("emission_saved", 0),
                points=p.get("points", 0),
                streak_days=p.get("streak_days", 0),
                progress=p.get("progress", 0),
            )
            for p in participants
        ]

    async def get_user_rank(self, challenge_id: ObjectId, user_id: ObjectId) -> UserRank | None:
        """Rang de l'utilisateur = 1 + nombre de participants actifs strictement devant."""
        participant = await self.db.challenge_participants.find_one(
            {"challenge_id": challenge_id, "user_id": user_id, "status": "active"}
        )
        if participant is None:
            return None
        saved = participant.get("emission_saved", 0)
        points = participant.get("points", 0)
        ahead = await self.db.challenge_participants.count_documents(
            ahead_filter(challenge_id, saved, points)
        )
        return UserRank(rank=ahead + 1, emission_saved=saved, points=points)

    async def get_challenge_leaderboard(
        self, challenge_id: ObjectId, user_id: ObjectId, limit: int = 10
    ) -> dict[str, Any]:
        """Classement + rang de l'utilisateur courant.

        Raises:
            NotFoundError: Challenge inconnu.
        """
        challenge = await self.db.challenges.find_one({"_id": challenge_id}, {"title": 1})
        if challenge is None:
            raise NotFoundError("Challenge not found")
        return {
            "challenge": {"id": str(challenge_id), "title": challenge.get("title")},
            "leaderboard": await self.get_leaderboard(challenge_id, limit),
            "user_rank": await self.get_user_rank(challenge_id, user_id),
        }
