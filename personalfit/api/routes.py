"""API routes for gamification and accountability

Routes are thin: they validate the request shape, call a service and return
its result. PersonalFitError subclasses raised by the services are turned
into HTTP responses by the handlers registered in server.py.
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status

from personalfit.api.auth import verify_admin_api_key, verify_api_key
from personalfit.api.middleware import limiter
from personalfit.api.models import (
    HealthCheckResponse,
    LeaderboardResponse,
    PenaltyCreateRequest,
    PersonalRecordRequest,
    PurchaseRequest,
    StreakFreezeRequest,
    SweepResponse,
    WorkoutCompletionRequest,
    WorkoutXPRequest,
)
from personalfit.db.connection import db
from personalfit.models.accountability import PenaltySeverity
from personalfit.models.gamification import ShopCategory
from personalfit.services.container import ServiceContainer, get_container
from personalfit.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services() -> ServiceContainer:
    """Service container dependency (overridden in tests)"""
    return get_container()


# ==========================================
# Gamification
# ==========================================

@router.get("/api/v1/users/{user_id}/gamification")
@limiter.limit("30/minute")
async def get_gamification_stats(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Get XP, level, streaks, gems and achievements (Rate limit: 30/minute)"""
    return await services.gamification_service.get_gamification_stats(user_id)


@router.post("/api/v1/users/{user_id}/gamification/workouts")
@limiter.limit("20/minute")
async def award_workout_xp(
    request: Request,
    user_id: str,
    payload: WorkoutXPRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Award XP for a completed workout (Rate limit: 20/minute)"""
    return await services.gamification_service.award_workout_xp(
        user_id,
        had_personal_record=payload.had_personal_record,
        workout_date=payload.workout_date
    )


@router.get("/api/v1/users/{user_id}/achievements")
@limiter.limit("30/minute")
async def get_achievements(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Full achievement catalog with unlocked flags (Rate limit: 30/minute)"""
    achievements = await services.gamification_service.get_achievements(user_id)
    return {
        'user_id': user_id,
        'achievements': achievements,
        'unlocked_count': sum(1 for a in achievements if a['unlocked']),
        'total_count': len(achievements),
    }


@router.get("/api/v1/leaderboard", response_model=LeaderboardResponse)
@limiter.limit("30/minute")
async def get_leaderboard(
    request: Request,
    limit: int = 10,
    offset: int = 0,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """XP leaderboard (Rate limit: 30/minute)"""
    leaderboard = await services.gamification_service.get_leaderboard(limit=limit, offset=offset)
    return LeaderboardResponse(leaderboard=leaderboard, limit=limit, offset=offset)


@router.get("/api/v1/users/{user_id}/rank")
@limiter.limit("30/minute")
async def get_user_rank(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """User's leaderboard position (Rate limit: 30/minute)"""
    return await services.gamification_service.get_user_rank(user_id)


# ==========================================
# Gems, shop & milestones
# ==========================================

@router.get("/api/v1/users/{user_id}/gems")
@limiter.limit("30/minute")
async def get_gem_balance(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Gem balance (Rate limit: 30/minute)"""
    return await services.gamification_service.get_gem_balance(user_id)


@router.get("/api/v1/users/{user_id}/shop")
@limiter.limit("30/minute")
async def get_shop_items(
    request: Request,
    user_id: str,
    category: Optional[ShopCategory] = None,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Shop catalog with ownership flags (Rate limit: 30/minute)"""
    return await services.gamification_service.get_shop_items(user_id, category)


@router.post("/api/v1/users/{user_id}/shop/purchase")
@limiter.limit("10/minute")
async def purchase_shop_item(
    request: Request,
    user_id: str,
    payload: PurchaseRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Buy a shop item (Rate limit: 10/minute)"""
    return await services.gamification_service.purchase_shop_item(user_id, payload.item_id)


@router.post("/api/v1/users/{user_id}/milestones/claim")
@limiter.limit("10/minute")
async def claim_milestone_rewards(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Claim gems for reached milestones (Rate limit: 10/minute)"""
    return await services.gamification_service.claim_milestone_rewards(user_id)


@router.post("/api/v1/users/{user_id}/streak-freeze")
@limiter.limit("10/minute")
async def use_streak_freeze(
    request: Request,
    user_id: str,
    payload: Optional[StreakFreezeRequest] = None,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Use (or buy) a streak freeze (Rate limit: 10/minute)"""
    freeze_date = payload.freeze_date if payload else None
    return await services.gamification_service.use_streak_freeze(user_id, today=freeze_date)


# ==========================================
# Accountability
# ==========================================

@router.get("/api/v1/users/{user_id}/accountability")
@limiter.limit("30/minute")
async def get_accountability_summary(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Streak, totals, current week and recent penalties (Rate limit: 30/minute)"""
    return await services.accountability_service.get_accountability_summary(user_id)


@router.get("/api/v1/users/{user_id}/accountability/details")
@limiter.limit("30/minute")
async def get_accountability_details(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Full accountability record (Rate limit: 30/minute)"""
    return await services.accountability_service.get_accountability_details(user_id)


@router.post("/api/v1/users/{user_id}/accountability/workouts")
@limiter.limit("20/minute")
async def record_workout_completion(
    request: Request,
    user_id: str,
    payload: WorkoutCompletionRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Apply a completed workout to the accountability streak (Rate limit: 20/minute)"""
    workout_date = payload.workout_date or now_utc()
    return await services.accountability_service.update_streak_on_completion(user_id, workout_date)


@router.get("/api/v1/users/{user_id}/accountability/penalties")
@limiter.limit("30/minute")
async def list_penalties(
    request: Request,
    user_id: str,
    resolved: Optional[bool] = None,
    severity: Optional[PenaltySeverity] = None,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """List penalties, optionally filtered (Rate limit: 30/minute)"""
    penalties = await services.accountability_service.list_penalties(
        user_id,
        resolved=resolved,
        severity=severity.value if severity else None
    )
    return {'penalties': penalties}


@router.post("/api/v1/users/{user_id}/accountability/penalties", status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_penalty(
    request: Request,
    user_id: str,
    payload: PenaltyCreateRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Assign a penalty manually (Rate limit: 20/minute)"""
    penalty = await services.accountability_service.create_penalty(
        user_id,
        payload.model_dump(exclude_none=True)
    )
    return {'penalty': penalty}


@router.post("/api/v1/users/{user_id}/accountability/penalties/{penalty_id}/resolve")
@limiter.limit("20/minute")
async def resolve_penalty(
    request: Request,
    user_id: str,
    penalty_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Mark a penalty resolved (Rate limit: 20/minute)"""
    penalties = await services.accountability_service.resolve_penalty(user_id, penalty_id)
    return {'penalties': penalties}


@router.get("/api/v1/users/{user_id}/accountability/current-week")
@limiter.limit("30/minute")
async def get_current_week_stats(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Planned/completed/missed for this week (Rate limit: 30/minute)"""
    return await services.accountability_service.get_current_week_stats(user_id)


@router.get("/api/v1/users/{user_id}/accountability/weekly-stats")
@limiter.limit("30/minute")
async def get_weekly_stats(
    request: Request,
    user_id: str,
    limit: Optional[int] = None,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Stored weekly stats, newest first (Rate limit: 30/minute)"""
    weekly_stats = await services.accountability_service.get_weekly_stats(user_id, limit=limit)
    return {'weekly_stats': weekly_stats}


# ==========================================
# Personal records
# ==========================================

@router.post("/api/v1/users/{user_id}/personal-records")
@limiter.limit("30/minute")
async def check_personal_record(
    request: Request,
    user_id: str,
    payload: PersonalRecordRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Check a result and store it if it is a new PR (Rate limit: 30/minute)"""
    return await services.personal_record_service.check_for_pr(
        user_id,
        payload.exercise_name,
        payload.category,
        payload.record_type,
        payload.value,
        payload.unit,
        workout_session_id=payload.workout_session_id,
        notes=payload.notes
    )


@router.get("/api/v1/users/{user_id}/personal-records")
@limiter.limit("30/minute")
async def get_pr_summary(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """PR totals and the 10 most recent PRs (Rate limit: 30/minute)"""
    return await services.personal_record_service.get_pr_summary(user_id)


@router.get("/api/v1/users/{user_id}/personal-records/bests")
@limiter.limit("30/minute")
async def get_all_time_bests(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Best result per exercise and record type (Rate limit: 30/minute)"""
    return {'bests': await services.personal_record_service.get_all_time_bests(user_id)}


@router.get("/api/v1/users/{user_id}/personal-records/history")
@limiter.limit("30/minute")
async def get_exercise_history(
    request: Request,
    user_id: str,
    exercise: str = Query(..., min_length=1),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """All PRs for one exercise (Rate limit: 30/minute)"""
    history = await services.personal_record_service.get_exercise_history(user_id, exercise)
    return {'exercise': exercise.strip().lower(), 'history': history}


@router.delete("/api/v1/users/{user_id}/personal-records/{pr_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def delete_personal_record(
    request: Request,
    user_id: str,
    pr_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Delete a PR (Rate limit: 20/minute)"""
    await services.personal_record_service.delete_pr(user_id, pr_id)


# ==========================================
# Admin
# ==========================================

@router.post("/api/v1/admin/missed-workouts/detect", response_model=SweepResponse)
@limiter.limit("5/minute")
async def detect_missed_workouts(
    request: Request,
    api_key: str = Depends(verify_admin_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Run the missed-workout sweep now (Rate limit: 5/minute)"""
    logger.info("Missed-workout sweep triggered via admin API")
    outcome = await services.missed_workout_service.trigger_missed_workout_detection()
    if outcome['success']:
        return SweepResponse(success=True, result=outcome['result'].model_dump())
    return SweepResponse(success=False, error=outcome['error'])


@router.post("/api/v1/admin/streak-freezes/monthly")
@limiter.limit("5/minute")
async def award_monthly_streak_freezes(
    request: Request,
    api_key: str = Depends(verify_admin_api_key),
    services: ServiceContainer = Depends(get_services)
):
    """Grant the monthly streak freezes to every user (Rate limit: 5/minute)"""
    logger.info("Monthly streak freeze grant triggered via admin API")
    updated = await services.gamification_service.award_monthly_streak_freezes()
    return {'users_updated': updated}


# ==========================================
# Health
# ==========================================

@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    db_status = "connected" if await db.ping() else "disconnected"

    return HealthCheckResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now()
    )
