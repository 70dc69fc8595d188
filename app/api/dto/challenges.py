# backend/app/api/dto/challenges.py
# DTOs des routes challenges (détail + participation, classement).

from __future__ import annotations

from pydantic import BaseModel

from app.models.challenge import ChallengeOut
from app.models.challenge_participant import LeaderboardEntry, ParticipationOut, UserRank


class ChallengeDetailOut(BaseModel):
    challenge: ChallengeOut
    participation: ParticipationOut | None = None


class ChallengeListOut(BaseModel):
    challenges: list[ChallengeOut]
    upcoming: list[ChallengeOut]


class ChallengeRef(BaseModel):
    id: str
    title: str | None = None


class LeaderboardOut(BaseModel):
    challenge: ChallengeRef
    leaderboard: list[LeaderboardEntry]
    user_rank: UserRank | None = None


class DeletedOut(BaseModel):
    deleted: bool = True
    cascade_deleted: int = 0
