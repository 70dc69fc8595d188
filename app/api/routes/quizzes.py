# backend/app/api/routes/quizzes.py
# Routes quiz : listing avec délai de réessai, CRUD admin, passage, soumission, résultats et statistiques.

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, status

from app.api.deps import Attempts, Quizzes
from app.api.dto.challenges import DeletedOut
from app.api.dto.quizzes import AvailableQuizzesOut, QuizResultsOut, QuizTakingOut, UserQuizStatsOut
from app.core.bson_utils import PyObjectId
from app.core.security import AdminUser, CurrentUserId, get_current_user
from app.models.quiz import QuizCreate, QuizOut, QuizUpdate
from app.models.quiz_attempt import AttemptStarted, QuizResult, QuizSubmission

router = APIRouter(
    prefix="/quizzes",
    tags=["quizzes"],
    dependencies=[Depends(get_current_user)],
)

QuizId = Annotated[PyObjectId, Path(..., description="Identifiant du quiz.")]
AttemptId = Annotated[PyObjectId, Path(..., description="Identifiant de la tentative.")]


@router.get(
    "/active",
    response_model=AvailableQuizzesOut,
    summary="Quiz disponibles",
    description=(
        "Quiz actifs, hors ceux complétés par l'utilisateur pendant la période de réessai (30 jours).\n\n"
        "- `cooldown_info` indique quand le plus récent redevient disponible"
    ),
)
async def list_available(user_id: CurrentUserId, service: Quizzes) -> AvailableQuizzesOut:
    return AvailableQuizzesOut(**await service.list_available_quizzes(user_id))


@router.get("/stats/user", response_model=UserQuizStatsOut, summary="Mes statistiques de quiz")
async def user_stats(user_id: CurrentUserId, service: Attempts) -> UserQuizStatsOut:
    return UserQuizStatsOut(**await service.get_user_stats(user_id))


@router.post(
    "",
    response_model=QuizOut,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un quiz (admin)",
    description="`total_questions` et `total_points` sont calculés depuis les questions.",
)
async def create_quiz(payload: QuizCreate, admin: AdminUser, service: Quizzes) -> QuizOut:
    quiz = await service.create_quiz(payload, admin.id)
    return QuizOut(**quiz.model_dump())


@router.get(
    "/{quiz_id}",
    response_model=QuizTakingOut,
    summary="Quiz à passer",
    description="Questions sans bonne réponse ni explication, et tentative finalisée éventuelle.",
)
async def get_quiz(quiz_id: QuizId, user_id: CurrentUserId, service: Quizzes) -> QuizTakingOut:
    return QuizTakingOut(**await service.get_quiz_for_taking(quiz_id, user_id))


@router.put("/{quiz_id}", response_model=QuizOut, summary="Modifier un quiz (admin)")
async def update_quiz(quiz_id: QuizId, payload: QuizUpdate, admin: AdminUser, service: Quizzes) -> QuizOut:
    quiz = await service.update_quiz(quiz_id, payload)
    return QuizOut(**quiz.model_dump())


@router.delete(
    "/{quiz_id}",
    response_model=DeletedOut,
    summary="Supprimer un quiz (admin)",
    description="Supprime le quiz et toutes ses tentatives.",
)
async def delete_quiz(quiz_id: QuizId, admin: AdminUser, service: Quizzes) -> DeletedOut:
    return DeletedOut(cascade_deleted=await service.delete_quiz(quiz_id))


@router.post(
    "/{quiz_id}/attempt",
    response_model=AttemptStarted,
    summary="Démarrer une tentative",
    description="Crée ou reprend la tentative `in_progress` ; 409 si le quiz est déjà complété.",
)
async def start_attempt(quiz_id: QuizId, user_id: CurrentUserId, service: Attempts) -> AttemptStarted:
    attempt = await service.start_attempt(quiz_id, user_id)
    return AttemptStarted(
        id=attempt.id, status=attempt.status, started_at=attempt.started_at, answers=len(attempt.answers)
    )


@router.post(
    "/{quiz_id}/submit",
    response_model=QuizResult,
    summary="Soumettre un quiz",
    description=(
        "Note la tentative et la finalise (une seule fois).\n\n"
        "- 400 si aucune tentative n'est démarrée ou si une question est inconnue\n"
        "- 409 si la tentative est déjà complétée"
    ),
)
async def submit_quiz(
    quiz_id: QuizId, submission: QuizSubmission, user_id: CurrentUserId, service: Attempts
) -> QuizResult:
    """Soumettre les réponses.

    Args:
        submission (QuizSubmission): Réponses et temps passé.

    Returns:
        QuizResult: Score, pourcentage, note et réussite.
    """
    attempt = await service.submit_quiz(quiz_id, user_id, submission)
    return service.to_result(attempt)


@router.get(
    "/{quiz_id}/results/{attempt_id}",
    response_model=QuizResultsOut,
    summary="Résultats détaillés d'une tentative",
)
async def get_results(
    quiz_id: QuizId, attempt_id: AttemptId, user_id: CurrentUserId, service: Attempts
) -> QuizResultsOut:
    return QuizResultsOut(**await service.get_results(quiz_id, attempt_id, user_id))


@router.get("/{quiz_id}/stats", summary="Statistiques d'un quiz (admin)")
async def quiz_stats(quiz_id: QuizId, admin: AdminUser, service: Attempts) -> dict[str, Any]:
    return await service.get_quiz_stats(quiz_id)
