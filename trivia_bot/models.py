"""
Core data models for the Discord Trivia Bot.

Persisted records are decoded once at the repository boundary into these
dataclasses; the live session state lives only in memory.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    """Timezone-aware current time, comparable with discord.py timestamps."""
    return datetime.now(timezone.utc)


class LeaderboardPeriod(Enum):
    """Leaderboard aggregation windows."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    OVERALL = "overall"


class TimerKind(Enum):
    """Kinds of timers a quiz session can own."""
    JOIN = "join"
    QUESTION = "question"
    TOTAL = "total"


@dataclass(frozen=True)
class TimerKey:
    """Identity of a scheduled timer."""
    session_id: str
    kind: TimerKind
    question_index: Optional[int] = None


# Persisted records

@dataclass
class Hint:
    """A hint attached to a question."""
    id: str
    question_id: str
    title: str
    text: str


@dataclass
class Question:
    """A single quiz question with its answer options."""
    id: str
    quiz_id: str
    question_text: str
    options: List[str]
    correct_answer: int
    points: int = 10
    time_limit: Optional[int] = None
    image_path: Optional[str] = None
    image_alt_text: Optional[str] = None
    hints: List[Hint] = field(default_factory=list)


@dataclass
class Quiz:
    """A quiz definition."""
    id: str
    title: str
    description: Optional[str] = None
    is_active: bool = True
    private: bool = False
    time_limit: Optional[int] = None
    owner_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class User:
    id: str
    username: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class QuestionAttempt:
    """One recorded answer of a finished quiz attempt."""
    id: str
    quiz_attempt_id: str
    question_id: str
    selected_answer: int
    is_correct: bool
    time_spent: int
    points_earned: int
    question_started_at: datetime
    answered_at: datetime
    answer_rank: Optional[int] = None
    was_fastest_correct: bool = False


@dataclass
class QuizAttempt:
    """A participant's finished run through a quiz."""
    id: str
    user_id: str
    quiz_id: str
    total_score: int
    total_time: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    question_attempts: List[QuestionAttempt] = field(default_factory=list)


@dataclass
class Score:
    """Running leaderboard total for one user in one period window."""
    id: str
    user_id: str
    period: LeaderboardPeriod
    year: int
    week: Optional[int] = None
    month: Optional[int] = None
    total_score: int = 0
    total_quizzes: int = 0
    average_score: float = 0.0
    best_time: Optional[int] = None


@dataclass
class Corpus:
    id: str
    title: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class CorpusEntry:
    id: str
    corpus_id: str
    tags: List[str] = field(default_factory=list)
    question_variants: List[str] = field(default_factory=list)
    answer_variants: List[str] = field(default_factory=list)
    hint_titles: List[str] = field(default_factory=list)
    hint_variants: Dict[str, List[str]] = field(default_factory=dict)


# Quiz input

@dataclass
class HintData:
    title: str
    text: str


@dataclass
class QuestionData:
    """Question content supplied when creating a quiz."""
    question_text: str
    options: List[str]
    correct_answer: int
    points: int = 10
    time_limit: Optional[int] = None
    image_path: Optional[str] = None
    image_alt_text: Optional[str] = None
    hints: List[HintData] = field(default_factory=list)


@dataclass
class QuizConfig:
    """Quiz content and options used to start a session."""
    title: str
    questions: List[QuestionData]
    description: Optional[str] = None
    time_limit: Optional[int] = None


# Live session state

@dataclass
class AnswerData:
    """A participant's answer to one question, written once."""
    question_index: int
    selected_answer: int
    is_correct: bool
    time_spent: int
    points_earned: int
    question_started_at: datetime
    answered_at: datetime
    answer_rank: int
    was_fastest_correct: bool = False


@dataclass
class ParticipantData:
    """A user taking part in a quiz session."""
    user_id: str
    username: str
    score: int = 0
    streak: int = 0
    answers: Dict[int, AnswerData] = field(default_factory=dict)
    start_time: datetime = field(default_factory=utc_now)


@dataclass
class QuizSession:
    """Represents a quiz running in a Discord channel or by direct message."""
    id: str
    quiz_id: str
    channel_id: int
    current_question_index: int = 0
    participants: Dict[str, ParticipantData] = field(default_factory=dict)
    is_active: bool = True
    is_waiting: bool = True
    is_question_complete: bool = False
    is_private: bool = False
    answer_submission_order: int = 0
    fastest_correct_answer_id: Optional[str] = None
    question_start_time: Optional[datetime] = None
    message_id: Optional[int] = None
    current_question_message_id: Optional[int] = None
    start_time: datetime = field(default_factory=utc_now)
    last_embed_update: Optional[float] = None
    owner_id: Optional[str] = None
    time_limit: Optional[int] = None
    questions: List[Question] = field(default_factory=list)
    channel: Any = field(default=None, repr=False, compare=False)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None


# Leaderboard views

@dataclass
class LeaderboardEntry:
    user_id: str
    username: str
    total_score: int
    total_quizzes: int
    average_score: int
    best_time: Optional[int]
    average_response_time: float
    rank: int = 0


@dataclass
class UserStats:
    """Aggregate statistics for one user across all quiz attempts."""
    user_id: str
    username: str
    total_score: int
    total_quizzes: int
    average_score: int
    best_time: Optional[int]
    average_response_time: float
    rank: int
    correct_answers: int
    total_answers: int
