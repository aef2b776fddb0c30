"""
Quiz storage for the Discord Trivia Bot.

``Repository`` is the persistence boundary used by the quiz controller and the
leaderboard; ``InMemoryRepository`` implements it for a single process.
``DataManager`` loads JSON quiz files and seeds them into a repository.
"""
import asyncio
import copy
import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from .errors import NotFoundError, ValidationError
from .models import (
    Corpus, CorpusEntry, Hint, HintData, LeaderboardPeriod, Question,
    QuestionAttempt, QuestionData, Quiz, QuizAttempt, QuizConfig, Score, User,
    utc_now,
)
from .views import MAX_OPTIONS


def new_id() -> str:
    return str(uuid.uuid4())


class Repository(ABC):
    """Persistence operations the bot depends on."""

    # Quizzes

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        ...

    @abstractmethod
    async def find_quiz_by_title(self, title: str) -> Optional[Quiz]:
        ...

    @abstractmethod
    async def list_quizzes(
        self,
        active_only: bool = False,
        include_private: bool = True,
        owner_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[Quiz]:
        ...

    @abstractmethod
    async def count_quizzes(self) -> int:
        ...

    @abstractmethod
    async def create_quiz_with_questions(
        self,
        title: str,
        questions: List[QuestionData],
        description: Optional[str] = None,
        time_limit: Optional[int] = None,
        private: bool = False,
        owner_id: Optional[str] = None,
        quiz_id: Optional[str] = None
    ) -> Quiz:
        """Create a quiz, its questions and their hints atomically."""

    @abstractmethod
    async def update_quiz(self, quiz_id: str, **changes: Any) -> Quiz:
        ...

    @abstractmethod
    async def delete_quiz(self, quiz_id: str) -> None:
        """Delete a quiz with its questions, hints and attempts."""

    # Questions and hints

    @abstractmethod
    async def get_questions(self, quiz_id: str) -> List[Question]:
        """Questions of a quiz in creation order, hints included."""

    @abstractmethod
    async def get_question(self, question_id: str) -> Optional[Question]:
        ...

    @abstractmethod
    async def add_question(self, quiz_id: str, data: QuestionData) -> Question:
        ...

    @abstractmethod
    async def update_question(self, question_id: str, **changes: Any) -> Question:
        ...

    @abstractmethod
    async def delete_question(self, question_id: str) -> None:
        ...

    @abstractmethod
    async def get_hint(self, hint_id: str) -> Optional[Hint]:
        ...

    @abstractmethod
    async def list_hints(self, question_id: str) -> List[Hint]:
        ...

    @abstractmethod
    async def add_hint(self, question_id: str, title: str, text: str) -> Hint:
        ...

    @abstractmethod
    async def delete_hint(self, hint_id: str) -> None:
        ...

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def upsert_user(self, user_id: str, username: str) -> User:
        ...

    # Attempts

    @abstractmethod
    async def create_quiz_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        ...

    @abstractmethod
    async def create_question_attempts(self, attempts: List[QuestionAttempt]) -> None:
        ...

    @abstractmethod
    async def list_quiz_attempts(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        completed_only: bool = True
    ) -> List[QuizAttempt]:
        """Attempts whose start time falls in [since, until), question attempts included."""

    @abstractmethod
    async def list_user_attempts(self, user_id: str) -> List[QuizAttempt]:
        ...

    # Scores

    @abstractmethod
    async def find_score(
        self,
        user_id: str,
        period: LeaderboardPeriod,
        year: int,
        week: Optional[int] = None,
        month: Optional[int] = None
    ) -> Optional[Score]:
        ...

    @abstractmethod
    async def save_score(self, score: Score) -> Score:
        ...

    # Corpora

    @abstractmethod
    async def create_corpus(self, title: str) -> Corpus:
        ...

    @abstractmethod
    async def get_corpus(self, corpus_id: str) -> Optional[Corpus]:
        ...

    @abstractmethod
    async def list_corpora(self) -> List[Corpus]:
        ...

    @abstractmethod
    async def add_corpus_entries(self, corpus_id: str, entries: List[CorpusEntry]) -> int:
        ...

    @abstractmethod
    async def list_corpus_entries(self, corpus_id: str) -> List[CorpusEntry]:
        ...

    @abstractmethod
    async def delete_corpus(self, corpus_id: str) -> None:
        ...

    @abstractmethod
    def transaction(self):
        """Async context manager; every write inside it is rolled back on error."""


class InMemoryRepository(Repository):
    """Repository kept in process memory; records are copied in and out."""

    _TABLES = (
        '_quizzes', '_questions', '_hints', '_users', '_quiz_attempts',
        '_question_attempts', '_scores', '_corpora', '_corpus_entries',
    )

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._quizzes: Dict[str, Quiz] = {}
        self._questions: Dict[str, Question] = {}
        self._hints: Dict[str, Hint] = {}
        self._users: Dict[str, User] = {}
        self._quiz_attempts: Dict[str, QuizAttempt] = {}
        self._question_attempts: Dict[str, QuestionAttempt] = {}
        self._scores: Dict[str, Score] = {}
        self._corpora: Dict[str, Corpus] = {}
        self._corpus_entries: Dict[str, CorpusEntry] = {}
        self._transaction_lock = asyncio.Lock()
        self._transaction_owner: Optional[asyncio.Task] = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryRepository"]:
        # nested transactions join the outer one
        if self._transaction_owner is not None and self._transaction_owner is asyncio.current_task():
            yield self
            return

        async with self._transaction_lock:
            self._transaction_owner = asyncio.current_task()
            snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._TABLES}
            try:
                yield self
            except BaseException:
                for name, table in snapshot.items():
                    setattr(self, name, table)
                self.logger.warning("Transaction rolled back")
                raise
            finally:
                self._transaction_owner = None

    # Quizzes

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        quiz = self._quizzes.get(quiz_id)
        return copy.deepcopy(quiz) if quiz else None

    async def find_quiz_by_title(self, title: str) -> Optional[Quiz]:
        for quiz in self._quizzes.values():
            if quiz.title == title:
                return copy.deepcopy(quiz)
        return None

    def _filter_quizzes(self, active_only: bool, include_private: bool,
                        owner_id: Optional[str]) -> List[Quiz]:
        quizzes = []
        for quiz in self._quizzes.values():
            if active_only and not quiz.is_active:
                continue
            # private quizzes are only listed for their owner unless requested
            if quiz.private and not include_private and quiz.owner_id != owner_id:
                continue
            quizzes.append(quiz)
        return sorted(quizzes, key=lambda q: q.created_at)

    async def list_quizzes(self, active_only=False, include_private=True, owner_id=None,
                           offset=0, limit=None) -> List[Quiz]:
        quizzes = self._filter_quizzes(active_only, include_private, owner_id)
        end = None if limit is None else offset + limit
        return copy.deepcopy(quizzes[offset:end])

    async def count_quizzes(self) -> int:
        return len(self._quizzes)

    async def create_quiz_with_questions(self, title, questions, description=None, time_limit=None,
                                         private=False, owner_id=None, quiz_id=None) -> Quiz:
        if not questions:
            raise ValidationError("A quiz needs at least one question")

        async with self.transaction():
            quiz = Quiz(
                id=quiz_id or new_id(),
                title=title,
                description=description,
                private=private,
                time_limit=time_limit,
                owner_id=owner_id
            )
            if quiz.id in self._quizzes:
                raise ValidationError(f"Quiz {quiz.id} already exists")
            self._quizzes[quiz.id] = quiz
            for data in questions:
                self._insert_question(quiz.id, data)

        self.logger.info(f"Created quiz '{title}' ({quiz.id}) with {len(questions)} questions")
        return copy.deepcopy(quiz)

    async def update_quiz(self, quiz_id: str, **changes: Any) -> Quiz:
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        for key, value in changes.items():
            if not hasattr(quiz, key) or key == 'id':
                raise ValidationError(f"Unknown quiz field: {key}")
            setattr(quiz, key, value)
        return copy.deepcopy(quiz)

    async def delete_quiz(self, quiz_id: str) -> None:
        if quiz_id not in self._quizzes:
            raise NotFoundError(f"Quiz {quiz_id} not found")

        async with self.transaction():
            question_ids = [q.id for q in self._questions.values() if q.quiz_id == quiz_id]
            for question_id in question_ids:
                self._remove_question(question_id)
            attempt_ids = [a.id for a in self._quiz_attempts.values() if a.quiz_id == quiz_id]
            for attempt_id in attempt_ids:
                del self._quiz_attempts[attempt_id]
                for qa_id in [qa.id for qa in self._question_attempts.values()
                              if qa.quiz_attempt_id == attempt_id]:
                    del self._question_attempts[qa_id]
            del self._quizzes[quiz_id]

        self.logger.info(f"Deleted quiz {quiz_id} with {len(question_ids)} questions")

    # Questions and hints

    @staticmethod
    def _check_options(options: List[str], correct_answer: int) -> None:
        if not options:
            raise ValidationError("A question needs at least one option")
        if len(options) > MAX_OPTIONS:
            raise ValidationError(f"A question can have at most {MAX_OPTIONS} options")
        if not 0 <= correct_answer < len(options):
            raise ValidationError(
                f"Correct answer index {correct_answer} is out of range for "
                f"{len(options)} options"
            )

    def _insert_question(self, quiz_id: str, data: QuestionData) -> Question:
        self._check_options(data.options, data.correct_answer)
        question = Question(
            id=new_id(),
            quiz_id=quiz_id,
            question_text=data.question_text,
            options=list(data.options),
            correct_answer=data.correct_answer,
            points=data.points,
            time_limit=data.time_limit,
            image_path=data.image_path,
            image_alt_text=data.image_alt_text
        )
        self._questions[question.id] = question
        for hint_data in data.hints:
            hint = Hint(id=new_id(), question_id=question.id, title=hint_data.title, text=hint_data.text)
            self._hints[hint.id] = hint
        return question

    def _remove_question(self, question_id: str) -> None:
        for hint_id in [h.id for h in self._hints.values() if h.question_id == question_id]:
            del self._hints[hint_id]
        del self._questions[question_id]

    def _with_hints(self, question: Question) -> Question:
        result = copy.deepcopy(question)
        result.hints = [copy.deepcopy(h) for h in self._hints.values() if h.question_id == question.id]
        return result

    async def get_questions(self, quiz_id: str) -> List[Question]:
        return [self._with_hints(q) for q in self._questions.values() if q.quiz_id == quiz_id]

    async def get_question(self, question_id: str) -> Optional[Question]:
        question = self._questions.get(question_id)
        return self._with_hints(question) if question else None

    async def add_question(self, quiz_id: str, data: QuestionData) -> Question:
        if quiz_id not in self._quizzes:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        async with self.transaction():
            question = self._insert_question(quiz_id, data)
        return self._with_hints(question)

    async def update_question(self, question_id: str, **changes: Any) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")
        for key in changes:
            if not hasattr(question, key) or key in ('id', 'quiz_id', 'hints'):
                raise ValidationError(f"Unknown question field: {key}")
        self._check_options(changes.get("options", question.options),
                            changes.get("correct_answer", question.correct_answer))
        for key, value in changes.items():
            setattr(question, key, value)
        return self._with_hints(question)

    async def delete_question(self, question_id: str) -> None:
        if question_id not in self._questions:
            raise NotFoundError(f"Question {question_id} not found")
        self._remove_question(question_id)

    async def get_hint(self, hint_id: str) -> Optional[Hint]:
        hint = self._hints.get(hint_id)
        return copy.deepcopy(hint) if hint else None

    async def list_hints(self, question_id: str) -> List[Hint]:
        return [copy.deepcopy(h) for h in self._hints.values() if h.question_id == question_id]

    async def add_hint(self, question_id: str, title: str, text: str) -> Hint:
        if question_id not in self._questions:
            raise NotFoundError(f"Question {question_id} not found")
        hint = Hint(id=new_id(), question_id=question_id, title=title, text=text)
        self._hints[hint.id] = hint
        return copy.deepcopy(hint)

    async def delete_hint(self, hint_id: str) -> None:
        if self._hints.pop(hint_id, None) is None:
            raise NotFoundError(f"Hint {hint_id} not found")

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def upsert_user(self, user_id: str, username: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            user = User(id=user_id, username=username)
            self._users[user_id] = user
        else:
            user.username = username
        return copy.deepcopy(user)

    # Attempts

    async def create_quiz_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        if attempt.quiz_id not in self._quizzes:
            raise NotFoundError(f"Quiz {attempt.quiz_id} not found")
        stored = copy.deepcopy(attempt)
        stored.question_attempts = []
        self._quiz_attempts[stored.id] = stored
        return copy.deepcopy(stored)

    async def create_question_attempts(self, attempts: List[QuestionAttempt]) -> None:
        for attempt in attempts:
            if attempt.quiz_attempt_id not in self._quiz_attempts:
                raise NotFoundError(f"Quiz attempt {attempt.quiz_attempt_id} not found")
        for attempt in attempts:
            self._question_attempts[attempt.id] = copy.deepcopy(attempt)

    def _with_question_attempts(self, attempt: QuizAttempt) -> QuizAttempt:
        result = copy.deepcopy(attempt)
        result.question_attempts = [
            copy.deepcopy(qa) for qa in self._question_attempts.values()
            if qa.quiz_attempt_id == attempt.id
        ]
        return result

    async def list_quiz_attempts(self, since=None, until=None, completed_only=True) -> List[QuizAttempt]:
        attempts = []
        for attempt in self._quiz_attempts.values():
            if completed_only and attempt.completed_at is None:
                continue
            if since is not None and attempt.started_at < since:
                continue
            if until is not None and attempt.started_at >= until:
                continue
            attempts.append(self._with_question_attempts(attempt))
        return attempts

    async def list_user_attempts(self, user_id: str) -> List[QuizAttempt]:
        return [
            self._with_question_attempts(a) for a in self._quiz_attempts.values()
            if a.user_id == user_id
        ]

    # Scores

    async def find_score(self, user_id, period, year, week=None, month=None) -> Optional[Score]:
        for score in self._scores.values():
            if (score.user_id == user_id and score.period == period and score.year == year
                    and score.week == week and score.month == month):
                return copy.deepcopy(score)
        return None

    async def save_score(self, score: Score) -> Score:
        self._scores[score.id] = copy.deepcopy(score)
        return copy.deepcopy(score)

    # Corpora

    async def create_corpus(self, title: str) -> Corpus:
        corpus = Corpus(id=new_id(), title=title)
        self._corpora[corpus.id] = corpus
        return copy.deepcopy(corpus)

    async def get_corpus(self, corpus_id: str) -> Optional[Corpus]:
        corpus = self._corpora.get(corpus_id)
        return copy.deepcopy(corpus) if corpus else None

    async def list_corpora(self) -> List[Corpus]:
        return [copy.deepcopy(c) for c in self._corpora.values()]

    async def add_corpus_entries(self, corpus_id: str, entries: List[CorpusEntry]) -> int:
        if corpus_id not in self._corpora:
            raise NotFoundError(f"Corpus {corpus_id} not found")
        for entry in entries:
            stored = copy.deepcopy(entry)
            stored.corpus_id = corpus_id
            self._corpus_entries[stored.id] = stored
        return len(entries)

    async def list_corpus_entries(self, corpus_id: str) -> List[CorpusEntry]:
        return [copy.deepcopy(e) for e in self._corpus_entries.values() if e.corpus_id == corpus_id]

    async def delete_corpus(self, corpus_id: str) -> None:
        if corpus_id not in self._corpora:
            raise NotFoundError(f"Corpus {corpus_id} not found")
        async with self.transaction():
            for entry_id in [e.id for e in self._corpus_entries.values() if e.corpus_id == corpus_id]:
                del self._corpus_entries[entry_id]
            del self._corpora[corpus_id]


class DataManager:
    """Manages loading and validation of JSON quiz files."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

    def __init__(self, quiz_directory: str = "./quizzes/", default_points: int = 10):
        """
        Initialize DataManager with quiz directory path.

        Args:
            quiz_directory: Path to directory containing JSON quiz files
            default_points: Points used for questions that do not set their own
        """
        self.quiz_directory = Path(quiz_directory)
        self.default_points = default_points
        self.loaded_quizzes: Dict[str, QuizConfig] = {}
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Track loading errors for user feedback

    def load_quiz_files(self) -> Dict[str, QuizConfig]:
        """
        Load all JSON files from the quiz directory.

        A file that fails to load is recorded in ``load_errors`` and skipped.

        Returns:
            Dictionary mapping file names (without extension) to quiz configs
        """
        self.loaded_quizzes.clear()
        self.load_errors.clear()

        if not self.quiz_directory.exists():
            self.logger.warning(f"Quiz directory {self.quiz_directory} does not exist")
            self.load_errors.append(f"Quiz directory not found: {self.quiz_directory}")
            return self.loaded_quizzes

        try:
            json_files = sorted(self.quiz_directory.glob("*.json"))
        except OSError as e:
            self.logger.error(f"Failed to scan {self.quiz_directory}: {e}")
            self.load_errors.append(f"System error scanning {self.quiz_directory}: {e}")
            return self.loaded_quizzes

        if not json_files:
            self.logger.warning(f"No JSON files found in {self.quiz_directory}")
            self.load_errors.append(f"No quiz files found in {self.quiz_directory}")
            return self.loaded_quizzes

        for json_file in json_files:
            load_result = self._load_quiz_file_safely(json_file)
            if not load_result['success']:
                self.load_errors.append(f"{json_file.name}: {load_result['error']}")

        self.logger.info(f"Successfully loaded {len(self.loaded_quizzes)} quiz files")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")

        return self.loaded_quizzes

    def _load_quiz_file_safely(self, json_file: Path) -> Dict[str, Any]:
        """
        Load a single quiz file.

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not os.access(json_file, os.R_OK):
                return {'success': False, 'error': "Permission denied: Cannot read file"}

            file_size = json_file.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB). "
                             f"Maximum size is {self.MAX_FILE_SIZE / 1024 / 1024}MB"
                }

            with open(json_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            problems = self.validate_quiz_structure(data)
            if problems:
                for problem in problems:
                    self.logger.error(f"{json_file.name}: {problem}")
                return {'success': False, 'error': "; ".join(problems)}

            quiz_config = self.parse_quiz(data)
            self.loaded_quizzes[json_file.stem] = quiz_config
            self.logger.info(
                f"Loaded quiz '{quiz_config.title}' with {len(quiz_config.questions)} questions"
            )
            return {'success': True}

        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {json_file}: {e}")
            return {'success': False, 'error': f"Invalid JSON: {e}"}
        except OSError as e:
            return {'success': False, 'error': f"System error: {e}"}

    def validate_quiz_structure(self, data: Any) -> List[str]:
        """
        Validate that JSON data has the correct quiz structure.

        Expected structure:
        {
            "title": str,
            "description": str,          # optional
            "timeLimit": int,            # optional, whole-quiz seconds
            "questions": [
                {
                    "questionText": str,
                    "options": [str, ...],
                    "correctAnswer": int,  # index into options
                    "points": int,         # optional
                    "timeLimit": int,      # optional
                    "imagePath": str,      # optional
                    "imageAltText": str,   # optional
                    "hints": [{"title": str, "text": str}]  # optional
                }
            ]
        }

        Returns:
            List of problems found; empty when the structure is valid
        """
        if not isinstance(data, dict):
            return ["Quiz data must be a JSON object"]

        problems = []
        if not isinstance(data.get("title"), str) or not data["title"].strip():
            problems.append("Quiz must have a non-empty 'title'")

        time_limit = data.get("timeLimit")
        if time_limit is not None and (not isinstance(time_limit, int) or time_limit <= 0):
            problems.append("'timeLimit' must be a positive integer")

        questions = data.get("questions")
        if not isinstance(questions, list) or not questions:
            problems.append("'questions' must be a non-empty array")
            return problems

        for i, question in enumerate(questions):
            if not isinstance(question, dict):
                problems.append(f"Question {i} must be an object")
                continue

            if not isinstance(question.get("questionText"), str):
                problems.append(f"Question {i} 'questionText' must be a string")

            options = question.get("options")
            if not isinstance(options, list) or not options or \
                    not all(isinstance(option, str) for option in options):
                problems.append(f"Question {i} 'options' must be a non-empty array of strings")
                continue
            if len(options) > MAX_OPTIONS:
                problems.append(f"Question {i} has more than {MAX_OPTIONS} options")

            correct = question.get("correctAnswer")
            if not isinstance(correct, int) or isinstance(correct, bool) or \
                    not 0 <= correct < len(options):
                problems.append(f"Question {i} 'correctAnswer' must be an index into 'options'")

            for key in ("points", "timeLimit"):
                value = question.get(key)
                if value is not None and (not isinstance(value, int) or value <= 0):
                    problems.append(f"Question {i} '{key}' must be a positive integer")

            hints = question.get("hints", [])
            if not isinstance(hints, list) or not all(
                isinstance(h, dict) and isinstance(h.get("title"), str) and isinstance(h.get("text"), str)
                for h in hints
            ):
                problems.append(f"Question {i} 'hints' must be an array of {{title, text}} objects")

        return problems

    def parse_quiz(self, data: Dict[str, Any]) -> QuizConfig:
        """
        Parse validated quiz data into a QuizConfig.

        Image paths are resolved relative to the quiz directory.
        """
        questions = []
        for question_data in data["questions"]:
            image_path = question_data.get("imagePath")
            if image_path and not Path(image_path).is_absolute():
                image_path = str(self.quiz_directory / image_path)
            questions.append(QuestionData(
                question_text=question_data["questionText"],
                options=list(question_data["options"]),
                correct_answer=question_data["correctAnswer"],
                points=question_data.get("points", self.default_points),
                time_limit=question_data.get("timeLimit"),
                image_path=image_path,
                image_alt_text=question_data.get("imageAltText"),
                hints=[HintData(title=h["title"], text=h["text"]) for h in question_data.get("hints", [])]
            ))

        return QuizConfig(
            title=data["title"],
            description=data.get("description"),
            time_limit=data.get("timeLimit"),
            questions=questions
        )

    async def seed_repository(self, repository: Repository) -> int:
        """
        Create every loaded quiz that the repository does not already hold.

        Quizzes are matched by title. Returns the number of quizzes created.
        """
        created = 0
        for name, quiz_config in self.loaded_quizzes.items():
            if await repository.find_quiz_by_title(quiz_config.title) is not None:
                self.logger.debug(f"Quiz '{quiz_config.title}' already present, skipping seed")
                continue
            try:
                await repository.create_quiz_with_questions(
                    title=quiz_config.title,
                    questions=quiz_config.questions,
                    description=quiz_config.description,
                    time_limit=quiz_config.time_limit
                )
            except ValidationError as e:
                self.logger.error(f"Failed to seed quiz from {name}: {e}")
                self.load_errors.append(f"{name}: {e}")
                continue
            created += 1
            self.logger.info(f"Seeded quiz: {quiz_config.title}")

        self.logger.info(f"Seeding complete, {created} quizzes created")
        return created

    def get_available_quizzes(self) -> List[str]:
        return [quiz.title for quiz in self.loaded_quizzes.values()]

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_quizzes': len(self.loaded_quizzes),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'quiz_directory': str(self.quiz_directory),
            'available_quizzes': self.get_available_quizzes(),
            'loaded_at': utc_now().isoformat()
        }
