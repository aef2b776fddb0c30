"""
Leaderboard aggregation over finished quiz attempts.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

import discord

from .data_manager import Repository
from .errors import ValidationError
from .models import LeaderboardEntry, LeaderboardPeriod, QuizAttempt, Score, UserStats, utc_now
from .scoring import medal_for

PERIOD_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def start_of_week(moment: datetime) -> datetime:
    """Midnight of the Monday starting the week containing ``moment``."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=midnight.weekday())


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_year(moment: datetime) -> datetime:
    return moment.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def week_number(moment: datetime) -> Tuple[int, int]:
    """ISO (year, week) of ``moment``."""
    iso = moment.isocalendar()
    return iso[0], iso[1]


def period_start(period: LeaderboardPeriod, moment: datetime) -> datetime:
    if period is LeaderboardPeriod.WEEKLY:
        return start_of_week(moment)
    if period is LeaderboardPeriod.MONTHLY:
        return start_of_month(moment)
    if period is LeaderboardPeriod.YEARLY:
        return start_of_year(moment)
    return PERIOD_EPOCH


def parse_period(value) -> LeaderboardPeriod:
    if isinstance(value, LeaderboardPeriod):
        return value
    try:
        return LeaderboardPeriod(str(value).lower())
    except ValueError:
        raise ValidationError(f"Invalid period: {value}") from None


class LeaderboardService:
    """Maintains per-period score totals and builds ranked leaderboards."""

    def __init__(self, repository: Repository, clock: Callable[[], datetime] = utc_now):
        self.logger = logging.getLogger(__name__)
        self.repository = repository
        self.clock = clock

    async def update_score(
        self,
        user_id: str,
        period: LeaderboardPeriod,
        score: int,
        quiz_time: Optional[int] = None
    ) -> Score:
        """
        Add one finished quiz to the user's running total for a period.

        The record is keyed by (user, period, year) plus the ISO week for
        weekly totals or the month for monthly totals. ``best_time`` only
        ever decreases.
        """
        period = parse_period(period)
        now = self.clock()
        year, week, month = now.year, None, None
        if period is LeaderboardPeriod.WEEKLY:
            year, week = week_number(now)
        elif period is LeaderboardPeriod.MONTHLY:
            month = now.month

        existing = await self.repository.find_score(user_id, period, year, week=week, month=month)
        if existing is None:
            record = Score(
                id=str(uuid.uuid4()),
                user_id=user_id,
                period=period,
                year=year,
                week=week,
                month=month,
                total_score=score,
                total_quizzes=1,
                average_score=float(score),
                best_time=quiz_time
            )
        else:
            record = existing
            record.total_score += score
            record.total_quizzes += 1
            record.average_score = record.total_score / record.total_quizzes
            if quiz_time is not None and (record.best_time is None or quiz_time < record.best_time):
                record.best_time = quiz_time

        saved = await self.repository.save_score(record)
        self.logger.debug(
            f"Updated {period.value} score for user {user_id}: total {saved.total_score}",
            extra={'event_type': 'score_updated', 'user_id': user_id, 'period': period.value}
        )
        return saved

    async def _aggregate(self, attempts: List[QuizAttempt]) -> List[LeaderboardEntry]:
        totals: Dict[str, dict] = {}
        for attempt in attempts:
            timed = [qa.time_spent for qa in attempt.question_attempts if qa.time_spent is not None]
            entry = totals.get(attempt.user_id)
            if entry is None:
                entry = totals[attempt.user_id] = {
                    'total_score': 0,
                    'total_quizzes': 0,
                    'response_time': 0,
                    'timed_answers': 0,
                    'best_time': None,
                }
            entry['total_score'] += attempt.total_score
            entry['total_quizzes'] += 1
            entry['response_time'] += sum(timed)
            entry['timed_answers'] += len(timed)
            if attempt.total_time is not None and (
                    entry['best_time'] is None or attempt.total_time < entry['best_time']):
                entry['best_time'] = attempt.total_time

        entries = []
        for user_id, entry in totals.items():
            user = await self.repository.get_user(user_id)
            timed_answers = entry['timed_answers']
            entries.append((
                timed_answers == 0,
                LeaderboardEntry(
                    user_id=user_id,
                    username=user.username if user else user_id,
                    total_score=entry['total_score'],
                    total_quizzes=entry['total_quizzes'],
                    average_score=entry['total_score'] // entry['total_quizzes'],
                    best_time=entry['best_time'],
                    average_response_time=(
                        round(entry['response_time'] / timed_answers, 2) if timed_answers else 0.0
                    )
                )
            ))

        # entries without timed answers go after those with any
        entries.sort(key=lambda item: (-item[1].total_score, item[0], item[1].average_response_time))
        ranked = [entry for _, entry in entries]
        for position, entry in enumerate(ranked, start=1):
            entry.rank = position
        return ranked

    async def get_leaderboard(self, period: LeaderboardPeriod, limit: int = 10) -> List[LeaderboardEntry]:
        """
        Ranked leaderboard for the period's current window.

        Ranks are assigned over the full ordering before it is cut to ``limit``.
        """
        period = parse_period(period)
        now = self.clock()
        since = period_start(period, now)
        attempts = await self.repository.list_quiz_attempts(since=since, until=None)
        ranked = await self._aggregate(attempts)
        self.logger.debug(f"Built {period.value} leaderboard with {len(ranked)} entries")
        return ranked[:limit]

    async def get_user_stats(self, user_id: str) -> Optional[UserStats]:
        """Aggregate statistics for one user, or None if they never finished a quiz."""
        attempts = await self.repository.list_user_attempts(user_id)
        attempts = [a for a in attempts if a.completed_at is not None]
        if not attempts:
            return None

        total_score = sum(a.total_score for a in attempts)
        total_quizzes = len(attempts)
        times = [a.total_time for a in attempts if a.total_time is not None]
        question_attempts = [qa for a in attempts for qa in a.question_attempts]
        timed = [qa.time_spent for qa in question_attempts if qa.time_spent is not None]

        totals_by_user: Dict[str, int] = {}
        for attempt in await self.repository.list_quiz_attempts():
            totals_by_user[attempt.user_id] = totals_by_user.get(attempt.user_id, 0) + attempt.total_score
        ordering = sorted(totals_by_user.items(), key=lambda item: -item[1])
        rank = next(
            (position for position, (uid, _) in enumerate(ordering, start=1) if uid == user_id),
            len(ordering) + 1
        )

        user = await self.repository.get_user(user_id)
        return UserStats(
            user_id=user_id,
            username=user.username if user else user_id,
            total_score=total_score,
            total_quizzes=total_quizzes,
            average_score=total_score // total_quizzes,
            best_time=min(times) if times else None,
            average_response_time=round(sum(timed) / len(timed), 2) if timed else 0.0,
            rank=rank,
            correct_answers=sum(1 for qa in question_attempts if qa.is_correct),
            total_answers=len(question_attempts)
        )

    def create_leaderboard_embed(
        self,
        period: LeaderboardPeriod,
        entries: List[LeaderboardEntry],
        page: int = 1,
        total_pages: int = 1
    ) -> discord.Embed:
        period = parse_period(period)
        embed = discord.Embed(
            title=f"📊 Quiz Leaderboard - {period.value.capitalize()}",
            color=0x0099ff,
            timestamp=self.clock()
        )

        if not entries:
            embed.description = "No quiz data available for this period."
            return embed

        lines = []
        for entry in entries:
            time_text = f" (Avg time: {entry.average_response_time}s)" if entry.average_response_time > 0 else ""
            lines.append(
                f"{medal_for(entry.rank - 1)} **{entry.username}** - {entry.total_score} pts "
                f"({entry.average_score} avg){time_text}"
            )
        embed.add_field(name="Leaderboard", value="\n".join(lines), inline=False)

        if total_pages > 1:
            embed.set_footer(text=f"Page {page} of {total_pages}")
        return embed
