# backend/app/api/routes/challenges.py
# Routes challenges : création/MAJ/suppression (admin), listing, inscription, classement et recalcul de progression.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.deps import Challenges, Leaderboard, Progress
from app.api.dto.challenges import ChallengeDetailOut, ChallengeListOut, DeletedOut, LeaderboardOut
from app.core.bson_utils import PyObjectId
from app.core.security import AdminUser, CurrentUserId, get_current_user
from app.models.challenge import ChallengeCreate, ChallengeOut, ChallengeUpdate
from app.models.challenge_participant import ParticipantOut
from app.services.challenges.challenge_progress_service import ProgressBatchReport

router = APIRouter(
    prefix="/challenges",
    tags=["challenges"],
    dependencies=[Depends(get_current_user)],
)

ChallengeId = Annotated[PyObjectId, Path(..., description="Identifiant du challenge.")]


@router.post(
    "",
    response_model=ChallengeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un challenge (admin)",
    description=(
        "Crée un challenge ; le statut est dérivé des dates.\n\n"
        "- 409 si un challenge actif ou à venir porte déjà ce titre\n"
        "- `rewards.trees` par défaut selon la difficulté (Easy 1, Medium 3, Hard 5)"
    ),
)
async def create_challenge(payload: ChallengeCreate, admin: AdminUser, service: Challenges) -> ChallengeOut:
    """Créer un challenge.

    Args:
        payload (ChallengeCreate): Données du challenge.

    Returns:
        ChallengeOut: Challenge créé, avec champs dérivés.
    """
    challenge = await service.create_challenge(payload, admin.id)
    return ChallengeOut.from_challenge(challenge)


@router.get(
    "/active",
    response_model=ChallengeListOut,
    summary="Challenges en cours et à venir",
)
async def list_active(
    service: Challenges,
    upcoming_limit: int = Query(5, ge=0, le=50, description="Nombre de challenges à venir."),
) -> ChallengeListOut:
    active = await service.list_active()
    upcoming = await service.list_upcoming(upcoming_limit) if upcoming_limit else []
    return ChallengeListOut(
        challenges=[ChallengeOut.from_challenge(c) for c in active],
        upcoming=[ChallengeOut.from_challenge(c) for c in upcoming],
    )


@router.get(
    "/{challenge_id}",
    response_model=ChallengeDetailOut,
    summary="Détail d'un challenge",
    description="Retourne le challenge et, si l'utilisateur y participe, sa participation.",
)
async def get_challenge(challenge_id: ChallengeId, user_id: CurrentUserId, service: Challenges) -> ChallengeDetailOut:
    challenge = await service.get_challenge(challenge_id)
    return ChallengeDetailOut(
        challenge=ChallengeOut.from_challenge(challenge),
        participation=await service.get_participation(challenge_id, user_id),
    )


@router.put("/{challenge_id}", response_model=ChallengeOut, summary="Modifier un challenge (admin)")
async def update_challenge(
    challenge_id: ChallengeId, payload: ChallengeUpdate, admin: AdminUser, service: Challenges
) -> ChallengeOut:
    challenge = await service.update_challenge(challenge_id, payload)
    return ChallengeOut.from_challenge(challenge)


@router.delete(
    "/{challenge_id}",
    response_model=DeletedOut,
    summary="Supprimer un challenge (admin)",
    description="Supprime le challenge et toutes ses participations.",
)
async def delete_challenge(challenge_id: ChallengeId, admin: AdminUser, service: Challenges) -> DeletedOut:
    removed = await service.delete_challenge(challenge_id)
    return DeletedOut(cascade_deleted=removed)


@router.post(
    "/{challenge_id}/join",
    response_model=ParticipantOut,
    status_code=status.HTTP_201_CREATED,
    summary="Rejoindre un challenge",
    description=(
        "Inscrit l'utilisateur courant.\n\n"
        "- 409 si le challenge est terminé, annulé ou complet, ou si déjà inscrit"
    ),
)
async def join_challenge(challenge_id: ChallengeId, user_id: CurrentUserId, service: Challenges) -> ParticipantOut:
    participant = await service.join_challenge(challenge_id, user_id)
    return ParticipantOut(**participant.model_dump())


@router.get(
    "/{challenge_id}/leaderboard",
    response_model=LeaderboardOut,
    summary="Classement d'un challenge",
    description="Participants triés par économies puis points, et rang de l'utilisateur courant.",
)
async def leaderboard(
    challenge_id: ChallengeId,
    user_id: CurrentUserId,
    service: Leaderboard,
    limit: int = Query(10, ge=1, le=100, description="Nombre de lignes."),
) -> LeaderboardOut:
    return LeaderboardOut(**await service.get_challenge_leaderboard(challenge_id, user_id, limit))


@router.post(
    "/{challenge_id}/update-progress",
    response_model=ProgressBatchReport,
    summary="Recalculer la progression (admin)",
    description=(
        "Recalcule tous les participants actifs d'un challenge actif.\n\n"
        "- Un échec sur un participant est reporté sans interrompre le lot\n"
        "- 409 si le challenge n'est pas actif"
    ),
)
async def update_progress(challenge_id: ChallengeId, admin: AdminUser, service: Progress) -> ProgressBatchReport:
    return await service.update_challenge_progress(challenge_id)
