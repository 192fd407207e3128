"""Unit tests for AccountabilityService"""
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from personalfit.exceptions import ConcurrencyConflictError, RecordNotFoundError, ValidationError
from personalfit.models.accountability import PenaltySeverity, PenaltyType
from personalfit.services.accountability_service import AccountabilityService

USER = "user-123"
PENALTY_ID = "5f0c6a52-5e43-4c77-9d6c-0d5a3b0f2a11"
Q = 'personalfit.services.accountability_service.queries'


def _record_row(**overrides):
    row = {
        'user_id': USER,
        'current_streak': 0,
        'longest_streak': 0,
        'last_workout_date': None,
        'streak_start_date': None,
        'total_workouts_completed': 0,
        'total_workouts_missed': 0,
        'total_penalties': 0,
    }
    row.update(overrides)
    return row


def _penalty_row(**overrides):
    row = {
        'id': PENALTY_ID,
        'user_id': USER,
        'assigned_date': datetime(2024, 6, 12, 10, tzinfo=timezone.utc),
        'workout_date': datetime(2024, 6, 10, 18, tzinfo=timezone.utc),
        'penalty_type': 'missed_workout',
        'severity': 'moderate',
        'description': None,
        'resolved': False,
        'resolved_date': None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def service():
    return AccountabilityService(db_connection=AsyncMock())


# ============================================================================
# Record Tests
# ============================================================================

@pytest.mark.asyncio
async def test_record_created_on_first_access(service):
    get_record = AsyncMock(side_effect=[None, _record_row()])
    create = AsyncMock(return_value=True)

    with patch(f'{Q}.get_accountability_record', get_record), \
         patch(f'{Q}.create_accountability_if_absent', create):
        record = await service.get_or_create_accountability(USER)

    create.assert_awaited_once_with(service.db, USER)
    assert record.user_id == USER
    assert record.streak.current_streak == 0
    assert record.penalties == []


@pytest.mark.asyncio
async def test_record_unknown_user(service):
    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=None)), \
         patch(f'{Q}.create_accountability_if_absent', AsyncMock(return_value=False)):
        with pytest.raises(RecordNotFoundError):
            await service.get_or_create_accountability("ghost")


# ============================================================================
# Streak Tests
# ============================================================================

@pytest.mark.asyncio
async def test_first_completion_starts_streak(service):
    workout = datetime(2024, 6, 12, 18, tzinfo=timezone.utc)
    record = AsyncMock(return_value=_record_row(current_streak=1, longest_streak=1, last_workout_date=workout, streak_start_date=workout, total_workouts_completed=1))

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row())), \
         patch(f'{Q}.record_workout_completion', record):
        result = await service.update_streak_on_completion(USER, workout)

    record.assert_awaited_once_with(service.db, USER, 1, workout, workout, 0, None)
    assert result.streak.current_streak == 1


@pytest.mark.asyncio
async def test_next_day_completion_extends_streak(service):
    start = datetime(2024, 6, 9, 18, tzinfo=timezone.utc)
    last = datetime(2024, 6, 11, 18, tzinfo=timezone.utc)
    workout = datetime(2024, 6, 12, 7, tzinfo=timezone.utc)
    existing = _record_row(current_streak=3, longest_streak=3, last_workout_date=last, streak_start_date=start)
    record = AsyncMock(return_value=_record_row(current_streak=4, longest_streak=4))

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=existing)), \
         patch(f'{Q}.record_workout_completion', record):
        await service.update_streak_on_completion(USER, workout)

    record.assert_awaited_once_with(service.db, USER, 4, workout, start, 3, last)


@pytest.mark.asyncio
async def test_completion_after_reset_restarts_at_one(service):
    """Same-day workout after the sweep reset the streak to 0"""
    last = datetime(2024, 6, 12, 7, tzinfo=timezone.utc)
    workout = datetime(2024, 6, 12, 19, tzinfo=timezone.utc)
    existing = _record_row(current_streak=0, longest_streak=5, last_workout_date=last)
    record = AsyncMock(return_value=_record_row(current_streak=1, longest_streak=5))

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=existing)), \
         patch(f'{Q}.record_workout_completion', record):
        await service.update_streak_on_completion(USER, workout)

    record.assert_awaited_once_with(service.db, USER, 1, workout, workout, 0, last)


@pytest.mark.asyncio
async def test_completion_recomputed_after_concurrent_reset(service):
    """A sweep reset between read and write is not overwritten"""
    start = datetime(2024, 6, 9, 18, tzinfo=timezone.utc)
    last = datetime(2024, 6, 11, 18, tzinfo=timezone.utc)
    workout = datetime(2024, 6, 12, 7, tzinfo=timezone.utc)
    before_reset = _record_row(current_streak=3, longest_streak=3, last_workout_date=last, streak_start_date=start)
    after_reset = _record_row(current_streak=0, longest_streak=3, last_workout_date=last, streak_start_date=start, total_workouts_missed=1)
    record = AsyncMock(side_effect=[None, _record_row(current_streak=1, longest_streak=3)])

    with patch(f'{Q}.get_accountability_record', AsyncMock(side_effect=[before_reset, after_reset])), \
         patch(f'{Q}.record_workout_completion', record):
        result = await service.update_streak_on_completion(USER, workout)

    assert record.await_count == 2
    assert record.await_args_list[0].args[2:] == (4, workout, start, 3, last)
    assert record.await_args_list[1].args[2:] == (1, workout, workout, 0, last)
    assert result.streak.current_streak == 1


@pytest.mark.asyncio
async def test_completion_conflict_exhausted(service):
    record = AsyncMock(return_value=None)

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row(current_streak=2))), \
         patch(f'{Q}.record_workout_completion', record), \
         patch('personalfit.services.accountability_service.ACCOUNTABILITY_UPDATE_MAX_ATTEMPTS', 3):
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await service.update_streak_on_completion(USER, datetime(2024, 6, 12, 7, tzinfo=timezone.utc))

    assert exc_info.value.attempts == 3
    assert record.await_count == 3


@pytest.mark.asyncio
async def test_reset_streak(service):
    reset = AsyncMock(return_value=_record_row(current_streak=0, longest_streak=6, total_workouts_missed=1))

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row(current_streak=6, longest_streak=6))), \
         patch(f'{Q}.reset_accountability_streak', reset):
        record = await service.reset_streak(USER)

    reset.assert_awaited_once_with(service.db, USER)
    assert record.streak.current_streak == 0
    assert record.streak.longest_streak == 6
    assert record.total_workouts_missed == 1


# ============================================================================
# Penalty Tests
# ============================================================================

@pytest.mark.asyncio
async def test_assign_penalty(service):
    insert = AsyncMock(return_value=_penalty_row(severity='severe', description='Missed leg day'))
    workout = datetime(2024, 6, 10, 18, tzinfo=timezone.utc)

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row())), \
         patch(f'{Q}.insert_penalty', insert):
        penalty = await service.assign_penalty(USER, workout, PenaltySeverity.SEVERE, description='Missed leg day')

    insert.assert_awaited_once_with(service.db, USER, workout, 'missed_workout', 'severe', 'Missed leg day')
    assert penalty.severity == PenaltySeverity.SEVERE
    assert penalty.resolved is False


@pytest.mark.asyncio
async def test_record_missed_workout_closes_session(service):
    workout = datetime(2024, 6, 10, 18, tzinfo=timezone.utc)
    close = AsyncMock(return_value={
        'penalty': _penalty_row(severity='light'),
        'record': _record_row(current_streak=0, longest_streak=4, total_workouts_missed=1, total_penalties=1),
    })

    with patch(f'{Q}.close_missed_session', close):
        penalty, record = await service.record_missed_workout(
            USER, "s1", workout, PenaltySeverity.LIGHT, description="Missed", note="30h overdue"
        )

    close.assert_awaited_once_with(service.db, "s1", USER, "30h overdue", workout, 'light', "Missed")
    assert penalty.severity == PenaltySeverity.LIGHT
    assert record.streak.current_streak == 0
    assert record.streak.longest_streak == 4
    assert record.total_penalties == 1


@pytest.mark.asyncio
async def test_record_missed_workout_already_closed(service):
    workout = datetime(2024, 6, 10, 18, tzinfo=timezone.utc)

    with patch(f'{Q}.close_missed_session', AsyncMock(return_value=None)):
        assert await service.record_missed_workout(USER, "s1", workout, PenaltySeverity.LIGHT) is None


@pytest.mark.asyncio
async def test_record_missed_workout_propagates_failure(service):
    """Nothing is reported as applied when the transaction fails"""
    workout = datetime(2024, 6, 10, 18, tzinfo=timezone.utc)

    with patch(f'{Q}.close_missed_session', AsyncMock(side_effect=RuntimeError("insert failed"))):
        with pytest.raises(RuntimeError):
            await service.record_missed_workout(USER, "s1", workout, PenaltySeverity.MODERATE)


@pytest.mark.asyncio
async def test_create_penalty_defaults(service):
    insert = AsyncMock(return_value=_penalty_row())

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row())), \
         patch(f'{Q}.insert_penalty', insert):
        await service.create_penalty(USER, {'workout_date': '2024-06-10T18:00:00+00:00'})

    args = insert.await_args.args
    assert args[2] == datetime(2024, 6, 10, 18, tzinfo=timezone.utc)
    assert args[3] == PenaltyType.MISSED_WORKOUT.value
    assert args[4] == PenaltySeverity.MODERATE.value


@pytest.mark.asyncio
@pytest.mark.parametrize("payload,field", [
    ({}, "workout_date"),
    ({'workout_date': 'last tuesday'}, "workout_date"),
    ({'workout_date': '2024-06-10T18:00:00', 'severity': 'brutal'}, "severity"),
    ({'workout_date': '2024-06-10T18:00:00', 'penalty_type': 'rude'}, "penalty_type"),
])
async def test_create_penalty_validation(service, payload, field):
    insert = AsyncMock()

    with patch(f'{Q}.insert_penalty', insert):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_penalty(USER, payload)

    assert exc_info.value.field == field
    insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_penalty_returns_list(service):
    resolved = _penalty_row(resolved=True, resolved_date=datetime(2024, 6, 13, tzinfo=timezone.utc))

    with patch(f'{Q}.resolve_penalty', AsyncMock(return_value=resolved)), \
         patch(f'{Q}.list_penalties', AsyncMock(return_value=[resolved])):
        penalties = await service.resolve_penalty(USER, PENALTY_ID)

    assert len(penalties) == 1
    assert penalties[0].resolved is True
    assert penalties[0].resolved_date is not None


@pytest.mark.asyncio
async def test_resolve_penalty_invalid_id(service):
    with pytest.raises(ValidationError):
        await service.resolve_penalty(USER, "not-a-uuid")


@pytest.mark.asyncio
async def test_resolve_penalty_not_found(service):
    with patch(f'{Q}.resolve_penalty', AsyncMock(return_value=None)):
        with pytest.raises(RecordNotFoundError):
            await service.resolve_penalty(USER, PENALTY_ID)


@pytest.mark.asyncio
async def test_list_penalties_filters(service):
    list_mock = AsyncMock(return_value=[])

    with patch(f'{Q}.list_penalties', list_mock):
        await service.list_penalties(USER, resolved=False, severity='light')

    list_mock.assert_awaited_once_with(service.db, USER, resolved=False, severity='light')


@pytest.mark.asyncio
async def test_list_penalties_bad_severity(service):
    with pytest.raises(ValidationError):
        await service.list_penalties(USER, severity='extreme')


# ============================================================================
# Weekly Stats Tests
# ============================================================================

@pytest.mark.asyncio
async def test_current_week_stats(service, fixed_now):
    counts = AsyncMock(return_value={'planned': 3, 'completed': 2, 'missed': 1})
    upsert = AsyncMock(return_value={
        'week_start': date(2024, 6, 10),
        'workouts_planned': 3,
        'workouts_completed': 2,
        'workouts_missed': 1,
        'completion_rate': 66.67,
    })

    with patch('personalfit.utils.datetime_helpers.DEFAULT_TIMEZONE', 'UTC'), \
         patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row())), \
         patch(f'{Q}.count_sessions_in_range', counts), \
         patch(f'{Q}.upsert_weekly_stat', upsert):
        stat = await service.get_current_week_stats(USER, now=fixed_now)

    start, end = counts.await_args.args[2:4]
    assert start == datetime(2024, 6, 10, tzinfo=timezone.utc)
    assert end == datetime(2024, 6, 17, tzinfo=timezone.utc)
    upsert.assert_awaited_once_with(service.db, USER, date(2024, 6, 10), 3, 2, 1, 66.67)
    assert stat.completion_rate == 66.67


@pytest.mark.asyncio
async def test_current_week_stats_nothing_planned(service, fixed_now):
    upsert = AsyncMock(return_value={'week_start': date(2024, 6, 10)})

    with patch('personalfit.utils.datetime_helpers.DEFAULT_TIMEZONE', 'UTC'), \
         patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row())), \
         patch(f'{Q}.count_sessions_in_range', AsyncMock(return_value={'planned': 0, 'completed': 0, 'missed': 0})), \
         patch(f'{Q}.upsert_weekly_stat', upsert):
        await service.get_current_week_stats(USER, now=fixed_now)

    assert upsert.await_args.args[-1] == 0.0


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, 53])
async def test_weekly_stats_limit_validation(service, limit):
    with pytest.raises(ValidationError):
        await service.get_weekly_stats(USER, limit=limit)


# ============================================================================
# Summary Tests
# ============================================================================

@pytest.mark.asyncio
async def test_accountability_summary(service):
    last = datetime(2024, 6, 11, 18, tzinfo=timezone.utc)
    record = _record_row(current_streak=4, longest_streak=9, last_workout_date=last, total_workouts_completed=20, total_workouts_missed=2)
    list_mock = AsyncMock(return_value=[_penalty_row()])

    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=record)), \
         patch(f'{Q}.count_sessions_in_range', AsyncMock(return_value={'planned': 0, 'completed': 0, 'missed': 0})), \
         patch(f'{Q}.upsert_weekly_stat', AsyncMock(return_value={'week_start': date(2024, 6, 10)})), \
         patch(f'{Q}.count_penalties', AsyncMock(return_value={'total': 2, 'unresolved': 1})), \
         patch(f'{Q}.list_penalties', list_mock):
        summary = await service.get_accountability_summary(USER)

    assert summary['streak'] == {'current': 4, 'longest': 9, 'last_workout': last}
    assert summary['totals'] == {
        'workouts_completed': 20,
        'workouts_missed': 2,
        'penalties_assigned': 2,
        'penalties_unresolved': 1,
    }
    assert len(summary['recent_penalties']) == 1
    list_mock.assert_awaited_once_with(service.db, USER, resolved=False, limit=5)


@pytest.mark.asyncio
async def test_accountability_details(service):
    with patch(f'{Q}.get_accountability_record', AsyncMock(return_value=_record_row(total_penalties=1))), \
         patch(f'{Q}.list_penalties', AsyncMock(return_value=[_penalty_row()])), \
         patch(f'{Q}.get_weekly_stats', AsyncMock(return_value=[{'week_start': date(2024, 6, 3), 'workouts_planned': 2}])):
        record = await service.get_accountability_details(USER)

    assert len(record.penalties) == 1
    assert record.weekly_stats[0].workouts_planned == 2
