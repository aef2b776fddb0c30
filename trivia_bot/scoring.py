"""
Scoring rules for quiz answers and final standings.

All point values are integers rounded down.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .models import ParticipantData

MEDALS = ("🥇", "🥈", "🥉")


@dataclass
class ScoredAnswer:
    base_points: int
    speed_bonus: int

    @property
    def points_earned(self) -> int:
        return self.base_points + self.speed_bonus


def compute_time_spent(started_at: Optional[datetime], answered_at: datetime) -> int:
    """Whole seconds between the question being shown and the answer, never negative."""
    if started_at is None:
        return 0
    return max(0, math.floor((answered_at - started_at).total_seconds()))


def compute_speed_bonus(base_points: int, time_spent: int, time_limit: int, multiplier: float) -> int:
    """
    Bonus for answering before the time limit runs out.

    ``floor(base_points * multiplier * (1 - time_spent / time_limit))``, clamped
    at zero so answers at or after the limit earn no bonus.
    """
    if base_points <= 0 or time_limit <= 0:
        return 0
    bonus = math.floor(base_points * multiplier * (1 - time_spent / time_limit))
    return max(0, bonus)


def score_answer(
    is_correct: bool,
    question_points: int,
    time_spent: int,
    time_limit: int,
    multiplier: float
) -> ScoredAnswer:
    """Score one answer; incorrect answers earn nothing."""
    if not is_correct:
        return ScoredAnswer(base_points=0, speed_bonus=0)
    return ScoredAnswer(
        base_points=question_points,
        speed_bonus=compute_speed_bonus(question_points, time_spent, time_limit, multiplier)
    )


def average_answer_time(participant: ParticipantData) -> Optional[float]:
    """Mean time spent over answered questions, or None if nothing was answered."""
    if not participant.answers:
        return None
    return sum(a.time_spent for a in participant.answers.values()) / len(participant.answers)


def rank_participants(participants: Iterable[ParticipantData]) -> List[ParticipantData]:
    """
    Order participants for the final standings.

    Higher score first; equal scores are split by lower average answer time,
    and participants who answered nothing come after those who answered.
    """
    def sort_key(participant: ParticipantData):
        average = average_answer_time(participant)
        return (-participant.score, average is None, average or 0.0)

    return sorted(participants, key=sort_key)


def medal_for(position: int) -> str:
    """Medal for a 0-based standings position, or its 1-based number."""
    if position < len(MEDALS):
        return MEDALS[position]
    return f"{position + 1}."
