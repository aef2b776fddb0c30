"""
Quiz session controller for the Discord Trivia Bot.

Drives each session through its states: waiting for participants, running
timed questions, and completed (or stopped / cancelled). Every check that
guards a state change happens before the first ``await`` of the operation, so
concurrent button clicks and timer fires on the event loop cannot both pass it.
"""
import asyncio
import functools
import logging
import math
import os
import time
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import discord

from .button_cleanup import ButtonCleanupService, MessageKind
from .config_manager import ConfigManager
from .data_manager import Repository
from .errors import (
    QuizPermissionError, SessionNotFoundError, ValidationError,
    get_user_friendly_error_message,
)
from .leaderboard import LeaderboardService
from .models import (
    AnswerData, LeaderboardPeriod, ParticipantData, Question, QuestionAttempt,
    QuizAttempt, QuizConfig, QuizSession, TimerKind, utc_now,
)
from .quiz_engine import TimerManager
from .scoring import compute_time_spent, rank_participants, score_answer
from .session_registry import SessionRegistry
from . import views

STOPPED_MESSAGE = "🛑 Quiz has been stopped by an administrator."
TOTAL_TIMEOUT_MESSAGE = "⏰ **Total quiz time limit reached!** The quiz will now end."
NO_PARTICIPANTS_MESSAGE = "❌ No one joined the quiz. Quiz cancelled."
NO_QUESTIONS_MESSAGE = "❌ This quiz has no questions available. Quiz cancelled."
ERROR_MESSAGE = "❌ Something went wrong and the quiz was cancelled."


class QuizController:
    """
    Orchestrates quiz sessions across Discord channels.

    Sessions live in a ``SessionRegistry``; their join, question and total
    timers live in a ``TimerManager``. Finished attempts are written through
    the ``Repository`` and public results are forwarded to the leaderboard.
    """

    JOIN_CLEANUP_GRACE = 60  # seconds after the join wait
    QUESTION_CLEANUP_GRACE = 10  # seconds after the question time limit
    PROGRESS_UPDATE_INTERVAL = 1.0

    def __init__(
        self,
        repository: Repository,
        config_manager: ConfigManager,
        leaderboard: Optional[LeaderboardService] = None,
        button_cleanup: Optional[ButtonCleanupService] = None,
        client: Optional[discord.Client] = None,
        registry: Optional[SessionRegistry] = None,
        timers: Optional[TimerManager] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the quiz controller.

        Args:
            repository: Storage for quizzes, questions and attempts
            config_manager: Source of timeouts and scoring parameters
            leaderboard: Receives final scores of public quizzes
            button_cleanup: Removes buttons from quiz messages
            client: Discord client used to resolve quiz owners
            clock: Monotonic clock used to throttle progress edits
        """
        self.logger = logging.getLogger(__name__)
        self.repository = repository
        self.config_manager = config_manager
        self.leaderboard = leaderboard
        self.button_cleanup = button_cleanup or ButtonCleanupService(client)
        self.client = client
        self.registry = registry or SessionRegistry()
        self.timers = timers or TimerManager()
        self.clock = clock

        self.logger.info("QuizController initialized")

    # Session lifecycle

    async def start(
        self,
        channel,
        quiz_config: QuizConfig,
        quiz_id: Optional[str] = None,
        wait_seconds: Optional[int] = None,
        persist: bool = False,
        is_private: bool = False,
        owner_user_id: Optional[str] = None
    ) -> QuizSession:
        """
        Start a quiz session.

        Public sessions post a join message and wait ``wait_seconds`` for
        participants. Private sessions run immediately for their owner alone,
        delivered by direct message.

        Args:
            channel: Channel for a public quiz
            quiz_config: Quiz content; saved first when ``persist`` is set
            quiz_id: Repository id of the quiz; generated when persisting a new quiz
            wait_seconds: Join phase length, defaults to the configured wait time
            persist: Save ``quiz_config`` to the repository before starting
            is_private: Run the quiz for ``owner_user_id`` only
            owner_user_id: Owner of a private quiz

        Returns:
            The registered session

        Raises:
            QuizPermissionError: If a private quiz has no resolvable owner
            ValidationError: If the owner already has a private quiz running
        """
        if wait_seconds is None:
            wait_seconds = self.config_manager.default_wait_time

        owner = None
        if is_private:
            if not owner_user_id:
                raise QuizPermissionError("Private quizzes require an owner.")
            self._ensure_no_private_session(owner_user_id)
            owner = await self._resolve_user(owner_user_id)
            channel = owner.dm_channel or await owner.create_dm()

        if persist:
            quiz_id = await self._persist_quiz_config(quiz_config, quiz_id, is_private, owner_user_id)
        if quiz_id is None:
            raise ValidationError("A quiz id is required to start a quiz.")

        session = QuizSession(
            id=str(uuid.uuid4()),
            quiz_id=quiz_id,
            channel_id=channel.id,
            is_private=is_private,
            owner_id=str(owner_user_id) if is_private else None,
            time_limit=quiz_config.time_limit,
            channel=channel
        )

        if is_private:
            self._ensure_no_private_session(session.owner_id)
            session.participants[session.owner_id] = ParticipantData(
                user_id=session.owner_id,
                username=owner.name
            )
            self.registry.create(session)
            self.logger.info(
                f"Starting private quiz {quiz_id} for user {session.owner_id}",
                extra={'event_type': 'session_started', 'session_id': session.id, 'private': True}
            )
            await self._run_guarded(session, self.start_quiz_questions, "private quiz start")
            return session

        self.registry.create(session)
        try:
            message = await channel.send(
                embed=views.build_join_embed(
                    quiz_config, self.config_manager.default_question_timeout, wait_seconds
                ),
                view=views.build_join_view(session.id)
            )
        except discord.HTTPException:
            self.registry.remove(session.id)
            raise

        session.message_id = message.id
        self.button_cleanup.schedule_quiz_cleanup(
            message.id, channel.id, wait_seconds + self.JOIN_CLEANUP_GRACE
        )
        self.timers.schedule_join_timeout(
            session.id,
            wait_seconds,
            functools.partial(self._on_timer, session.id, self._handle_join_timeout, "join timeout")
        )

        self.logger.info(
            f"Started quiz {quiz_id} in channel {channel.id}, waiting {wait_seconds}s for participants",
            extra={'event_type': 'session_started', 'session_id': session.id, 'private': False}
        )
        return session

    async def _persist_quiz_config(self, quiz_config: QuizConfig, quiz_id: Optional[str],
                                   is_private: bool, owner_user_id: Optional[str]) -> Optional[str]:
        try:
            quiz = await self.repository.create_quiz_with_questions(
                title=quiz_config.title,
                questions=quiz_config.questions,
                description=quiz_config.description,
                time_limit=quiz_config.time_limit,
                private=is_private,
                owner_id=str(owner_user_id) if owner_user_id else None,
                quiz_id=quiz_id
            )
            return quiz.id
        except Exception as e:
            self.logger.error(f"Failed to save quiz '{quiz_config.title}': {e}")
            return quiz_id

    async def handle_join(self, interaction: discord.Interaction) -> None:
        """Add the clicking user to a waiting session."""
        button = await self._parse_button(interaction)
        if button is None:
            return

        session = self.registry.get(button.session_id)
        if session is None or not session.is_active or not session.is_waiting:
            await self._reply(interaction, "Quiz session not found or not accepting participants.")
            return

        user_id = str(interaction.user.id)
        if user_id in session.participants:
            await self._reply(interaction, "You have already joined this quiz!")
            return

        session.participants[user_id] = ParticipantData(user_id=user_id, username=interaction.user.name)
        self.logger.info(
            f"User {user_id} joined session {session.id} ({len(session.participants)} participants)",
            extra={'event_type': 'participant_joined', 'session_id': session.id, 'user_id': user_id}
        )

        await self._reply(interaction, "✅ You have joined the quiz!")
        await self._update_join_message(session, interaction.message)

    async def _update_join_message(self, session: QuizSession, message=None) -> None:
        try:
            if message is None:
                message = await session.channel.fetch_message(session.message_id)
            if not message.embeds:
                return
            embed = views.set_participant_count(message.embeds[0].copy(), len(session.participants))
            await message.edit(embed=embed)
        except discord.HTTPException as e:
            self.logger.warning(f"Failed to update join message for session {session.id}: {e}")

    async def handle_manual_start(self, interaction: discord.Interaction) -> None:
        """Begin the questions early from the join message's Start Now button."""
        button = await self._parse_button(interaction)
        if button is None:
            return

        session = self.registry.get(button.session_id)
        if session is None or not session.is_active or not session.is_waiting:
            await self._reply(interaction, "Quiz session not found or already started.")
            return

        # flip before any await so a second click sees the quiz as started
        session.is_waiting = False
        self.timers.cancel_kind(session.id, TimerKind.JOIN)
        self.logger.info(
            f"Session {session.id} started manually by user {interaction.user.id}",
            extra={'event_type': 'session_manual_start', 'session_id': session.id}
        )

        await self._reply(interaction, "🚀 Starting the quiz!")
        await self._run_guarded(session, self.start_quiz_questions, "manual start")

    async def _handle_join_timeout(self, session: QuizSession, channel) -> None:
        if not session.is_waiting:
            return
        session.is_waiting = False
        await self.start_quiz_questions(session, channel)

    async def start_quiz_questions(self, session: QuizSession, channel) -> None:
        """
        Leave the join phase and show the first question.

        A session nobody joined is cancelled without recording anything.
        """
        session.is_waiting = False
        session.is_question_complete = False
        await self._remove_join_buttons(session)

        if not session.participants:
            self.logger.info(
                f"No participants joined session {session.id}, cancelling",
                extra={'event_type': 'session_cancelled', 'session_id': session.id}
            )
            self._discard(session)
            await self._safe_send(channel, NO_PARTICIPANTS_MESSAGE)
            return

        questions = await self.repository.get_questions(session.quiz_id)
        if not session.is_active:
            return
        if not questions:
            self.logger.error(f"Quiz {session.quiz_id} has no questions, cancelling session {session.id}")
            self._discard(session)
            await self._safe_send(channel, NO_QUESTIONS_MESSAGE)
            return

        session.questions = questions
        session.current_question_index = 0

        if session.time_limit:
            self.timers.schedule_total_timeout(
                session.id,
                session.time_limit,
                functools.partial(self._on_timer, session.id, self.handle_total_timeout, "total timeout")
            )

        await self.display_question(session, channel)

    async def display_question(self, session: QuizSession, channel) -> None:
        """Send the current question and arm its timer."""
        if not session.is_active:
            return

        question = session.current_question
        if question is None:
            await self.end_quiz(session, channel)
            return

        index = session.current_question_index
        session.answer_submission_order = 0
        session.fastest_correct_answer_id = None
        session.is_question_complete = False
        session.last_embed_update = None

        time_limit = question.time_limit or self.config_manager.default_question_timeout
        embed = views.build_question_embed(
            question, index, len(session.questions), time_limit, len(session.participants)
        )
        send_kwargs = {
            'embed': embed,
            'view': views.build_question_view(session.id, index, question)
        }

        if question.image_path and not session.is_private:
            if os.path.isfile(question.image_path):
                filename = f"question-image{Path(question.image_path).suffix}"
                send_kwargs['file'] = discord.File(question.image_path, filename=filename)
                embed.set_image(url=f"attachment://{filename}")
                if question.image_alt_text:
                    embed.set_footer(text=question.image_alt_text)
            else:
                self.logger.warning(f"Image {question.image_path} for question {question.id} not found")

        message = await channel.send(**send_kwargs)
        session.current_question_message_id = message.id
        session.question_start_time = message.created_at

        self.timers.schedule_question_timeout(
            session.id,
            index,
            time_limit,
            functools.partial(self._on_question_timer, session.id, index)
        )
        if not session.is_private:
            self.button_cleanup.schedule_question_cleanup(
                message.id, channel.id, time_limit + self.QUESTION_CLEANUP_GRACE
            )

        self.logger.info(
            f"Displayed question {index + 1}/{len(session.questions)} for session {session.id}",
            extra={'event_type': 'question_displayed', 'session_id': session.id, 'question_index': index}
        )

    async def handle_answer(self, interaction: discord.Interaction) -> None:
        """
        Record a participant's answer to the current question.

        The answer is scored and written before the first ``await``. Answering
        never closes the question early; the round runs its full timer.
        """
        button = await self._parse_button(interaction, expected_action="answer")
        if button is None:
            return

        session = self.registry.get(button.session_id)
        if session is None or not session.is_active or session.is_waiting:
            await self._reply(interaction, "Quiz session not found or not accepting answers.")
            return

        if button.question_index != session.current_question_index or session.is_question_complete:
            await self._reply(interaction, "This question is no longer accepting answers.")
            return

        user_id = str(interaction.user.id)
        participant = session.participants.get(user_id)
        if participant is None:
            await self._reply(interaction, "You are not a participant in this quiz.")
            return

        if button.question_index in participant.answers:
            await self._reply(interaction, "You have already answered this question.")
            return

        question = session.current_question
        if question is None or not 0 <= button.option_index < len(question.options):
            await self._reply(interaction, "Invalid answer option.")
            return

        answered_at = interaction.created_at
        is_correct = button.option_index == question.correct_answer
        time_limit = question.time_limit or self.config_manager.default_question_timeout
        time_spent = compute_time_spent(session.question_start_time, answered_at)
        scored = score_answer(
            is_correct, question.points, time_spent, time_limit,
            self.config_manager.speed_bonus_multiplier
        )

        session.answer_submission_order += 1
        was_fastest_correct = False
        if is_correct and session.fastest_correct_answer_id is None:
            session.fastest_correct_answer_id = user_id
            was_fastest_correct = True

        participant.score += scored.points_earned
        participant.streak = participant.streak + 1 if is_correct else 0
        participant.answers[button.question_index] = AnswerData(
            question_index=button.question_index,
            selected_answer=button.option_index,
            is_correct=is_correct,
            time_spent=time_spent,
            points_earned=scored.points_earned,
            question_started_at=session.question_start_time or answered_at,
            answered_at=answered_at,
            answer_rank=session.answer_submission_order,
            was_fastest_correct=was_fastest_correct
        )

        self.logger.debug(
            f"User {user_id} answered question {button.question_index} of session {session.id}: "
            f"{'correct' if is_correct else 'incorrect'}, {scored.points_earned} points",
            extra={'event_type': 'answer_recorded', 'session_id': session.id, 'user_id': user_id}
        )

        feedback = "✅ Correct!" if is_correct else "❌ Incorrect!"
        points_text = f" (+{scored.points_earned} points)" if is_correct else ""
        fastest_text = " 🏃 **Fastest correct answer!**" if was_fastest_correct else ""
        await self._reply(interaction, f"{feedback}{points_text}{fastest_text}")

        if not session.is_private:
            await self.update_question_progress(session, session.channel, interaction.message)

    async def handle_hint(self, interaction: discord.Interaction) -> None:
        """Show a hint for the current question to the clicking user only."""
        button = await self._parse_button(interaction, expected_action="hint")
        if button is None:
            return

        session = self.registry.get(button.session_id)
        if session is None or not session.is_active or session.is_waiting:
            await self._reply(interaction, "Quiz session not found or not active.")
            return

        if button.question_index != session.current_question_index:
            await self._reply(interaction, "This hint is for a previous question.")
            return

        question = session.current_question
        hint = next((h for h in question.hints if h.id == button.hint_id), None) if question else None
        if hint is None:
            await self._reply(interaction, "Hint not found.")
            return

        await self._reply(interaction, embed=views.build_hint_embed(hint.title, hint.text))

    async def update_question_progress(self, session: QuizSession, channel, message=None) -> bool:
        """
        Refresh the "N of M answered" counter on the question message.

        At most one edit per second per session; an update inside that window
        is dropped.

        Returns:
            True if the message was edited
        """
        now = self.clock()
        if session.last_embed_update is not None and \
                now - session.last_embed_update < self.PROGRESS_UPDATE_INTERVAL:
            return False
        session.last_embed_update = now

        index = session.current_question_index
        answered = sum(1 for p in session.participants.values() if index in p.answers)
        try:
            if message is None:
                message = await channel.fetch_message(session.current_question_message_id)
            if not message.embeds:
                return False
            embed = views.set_answered_count(message.embeds[0].copy(), answered, len(session.participants))
            await message.edit(embed=embed)
            return True
        except discord.HTTPException as e:
            self.logger.warning(f"Failed to update progress for session {session.id}: {e}")
            return False

    async def _on_question_timer(self, session_id: str, question_index: int) -> None:
        await self._on_timer(
            session_id,
            functools.partial(self.handle_question_timeout, question_index=question_index),
            "question timeout"
        )

    async def handle_question_timeout(self, session: QuizSession, channel,
                                      question_index: Optional[int] = None) -> None:
        """Close the current question once, however many times its timer fires."""
        if not session.is_active or session.is_waiting or session.is_question_complete:
            return
        if question_index is not None and question_index != session.current_question_index:
            self.logger.warning(
                f"Ignoring timeout for question {question_index} of session {session.id}; "
                f"current question is {session.current_question_index}"
            )
            return

        session.is_question_complete = True
        question = session.current_question
        if question is None:
            await self.end_quiz(session, channel)
            return
        await self.show_question_results(session, question, question.options, channel)

    async def show_question_results(self, session: QuizSession, question: Question,
                                    options: Sequence[str], channel) -> None:
        """Reveal the answer, then advance to the next question or finish."""
        if not session.is_private and session.current_question_message_id is not None:
            await self.button_cleanup.remove_buttons(
                session.current_question_message_id, channel.id, MessageKind.QUESTION, channel=channel
            )

        index = session.current_question_index
        answers = [p.answers[index] for p in session.participants.values() if index in p.answers]
        correct_count = sum(1 for answer in answers if answer.is_correct)
        await self._safe_send(
            channel, embed=views.build_results_embed(question, options, correct_count, len(answers))
        )

        if not session.is_active:
            return

        session.current_question_index += 1
        session.is_question_complete = False

        if session.current_question_index >= len(session.questions):
            await self.end_quiz(session, channel)
            return

        await asyncio.sleep(self.config_manager.result_delay)
        if not session.is_active:
            return
        await self.display_question(session, channel)

    async def handle_total_timeout(self, session: QuizSession, channel) -> None:
        """End the quiz immediately when its overall time limit runs out."""
        if not session.is_active:
            return
        self.logger.info(
            f"Total time limit reached for session {session.id}",
            extra={'event_type': 'session_total_timeout', 'session_id': session.id}
        )
        await self._safe_send(channel, TOTAL_TIMEOUT_MESSAGE)
        await self.end_quiz(session, channel)

    async def end_quiz(self, session: QuizSession, channel) -> None:
        """
        Finish a session: post standings, save attempts, update the leaderboard.

        Safe to call more than once; only the first call does anything.
        """
        if not session.is_active:
            return
        session.is_active = False
        session.is_waiting = False
        session.is_question_complete = False
        self.timers.cancel_all(session.id)

        try:
            await self._remove_join_buttons(session)

            completed_at = utc_now()
            total_seconds = max(0, math.floor((completed_at - session.start_time).total_seconds()))
            ranked = rank_participants(session.participants.values())

            await self._deliver_final_results(session, channel, views.build_final_embed(ranked, total_seconds))

            if ranked:
                await self._save_quiz_attempts(session, ranked, total_seconds, completed_at)
                if not session.is_private:
                    await self._update_leaderboard_scores(ranked, total_seconds)
        finally:
            self.registry.remove(session.id)

        self.logger.info(
            f"Quiz session {session.id} completed with {len(session.participants)} participants",
            extra={'event_type': 'session_completed', 'session_id': session.id}
        )

    async def stop(self, session_id: str) -> QuizSession:
        """
        Stop a session on an administrator's request.

        Nothing is saved and the leaderboard is left untouched.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Quiz session {session_id} not found")

        self.timers.cancel_all(session.id)
        was_active = session.is_active
        session.is_active = False
        session.is_waiting = False
        session.is_question_complete = False

        try:
            await self._remove_session_buttons(session)
            if was_active:
                await self._safe_send(session.channel, STOPPED_MESSAGE)
        finally:
            self.registry.remove(session.id)

        self.logger.info(
            f"Quiz session {session.id} stopped by administrator",
            extra={'event_type': 'session_stopped', 'session_id': session.id}
        )
        return session

    # Interaction routing

    async def handle_button_interaction(self, interaction: discord.Interaction) -> bool:
        """
        Dispatch a quiz button click.

        Returns:
            True if the interaction belonged to a quiz, False otherwise
        """
        custom_id = (interaction.data or {}).get('custom_id', '')
        handlers = (
            ('quiz_join_', self.handle_join),
            ('quiz_start_', self.handle_manual_start),
            ('quiz_answer_', self.handle_answer),
            ('quiz_hint_', self.handle_hint),
        )
        for prefix, handler in handlers:
            if custom_id.startswith(prefix):
                break
        else:
            return False

        try:
            await handler(interaction)
        except Exception as e:
            self.logger.error(f"Error handling button {custom_id}: {e}", exc_info=True)
            await self._reply(interaction, get_user_friendly_error_message(e, "this interaction"))
        return True

    # Lookups

    def get_session(self, session_id: str) -> Optional[QuizSession]:
        return self.registry.get(session_id)

    def get_session_for_channel(self, channel_id: int) -> Optional[QuizSession]:
        return self.registry.get_by_channel(channel_id)

    def get_all_active_sessions(self) -> List[QuizSession]:
        return [s for s in self.registry.all_sessions() if s.is_active]

    def get_private_session_for_owner(self, owner_id: str) -> Optional[QuizSession]:
        owner_id = str(owner_id)
        return next(
            (s for s in self.get_all_active_sessions() if s.is_private and s.owner_id == owner_id),
            None
        )

    def shutdown(self) -> None:
        """Cancel every timer and scheduled button cleanup."""
        cancelled = self.timers.shutdown()
        self.button_cleanup.cleanup_all()
        self.logger.info(f"QuizController shut down, {cancelled} timers cancelled")

    # Internals

    async def _on_timer(self, session_id: str, handler, operation: str) -> None:
        session = self.registry.get(session_id)
        if session is None or not session.is_active:
            self.logger.debug(f"Ignoring {operation} for finished session {session_id}")
            return
        await self._run_guarded(session, handler, operation)

    async def _run_guarded(self, session: QuizSession, handler, operation: str) -> None:
        """
        Run a state transition; on failure, cancel the session so it cannot get stuck.
        """
        try:
            await handler(session, session.channel)
        except Exception as e:
            self.logger.error(
                f"Error during {operation} for session {session.id}: {e}",
                exc_info=True,
                extra={'event_type': 'session_error', 'session_id': session.id, 'operation': operation}
            )
            await self._force_end(session)
            raise

    async def _force_end(self, session: QuizSession) -> None:
        """Cancel a session after a failed transition; nothing is saved."""
        self._discard(session)
        try:
            await self._remove_session_buttons(session)
            await self._safe_send(session.channel, ERROR_MESSAGE)
        except Exception as e:
            self.logger.error(f"Failed to clean up session {session.id} after error: {e}")

    def _ensure_no_private_session(self, owner_id: str) -> None:
        if self.get_private_session_for_owner(owner_id) is not None:
            raise ValidationError("You already have a private quiz running.")

    def _discard(self, session: QuizSession) -> None:
        session.is_active = False
        session.is_waiting = False
        session.is_question_complete = False
        self.timers.cancel_all(session.id)
        self.registry.remove(session.id)

    async def _remove_session_buttons(self, session: QuizSession) -> None:
        await self._remove_join_buttons(session)
        if not session.is_private and session.current_question_message_id is not None and session.channel:
            await self.button_cleanup.remove_buttons(
                session.current_question_message_id, session.channel_id,
                MessageKind.QUESTION, channel=session.channel
            )

    async def _remove_join_buttons(self, session: QuizSession) -> None:
        if session.is_private or session.message_id is None or session.channel is None:
            return
        await self.button_cleanup.remove_buttons(
            session.message_id, session.channel_id, MessageKind.QUIZ, channel=session.channel
        )
        session.message_id = None

    async def _deliver_final_results(self, session: QuizSession, channel, embed: discord.Embed) -> None:
        if not session.is_private:
            await self._safe_send(channel, embed=embed)
            return
        try:
            owner = await self._resolve_user(session.owner_id)
            await owner.send(embed=embed)
        except (QuizPermissionError, discord.HTTPException) as e:
            self.logger.error(f"Failed to send private results for session {session.id}: {e}")

    async def _save_quiz_attempts(self, session: QuizSession, ranked: List[ParticipantData],
                                  total_seconds: int, completed_at) -> int:
        """
        Save one quiz attempt per participant with its question attempts.

        A failure for one participant is logged and the others are still saved.

        Returns:
            Number of participants whose attempts were saved
        """
        saved = 0
        for participant in ranked:
            try:
                async with self.repository.transaction():
                    await self.repository.upsert_user(participant.user_id, participant.username)
                    attempt = await self.repository.create_quiz_attempt(QuizAttempt(
                        id=str(uuid.uuid4()),
                        user_id=participant.user_id,
                        quiz_id=session.quiz_id,
                        total_score=participant.score,
                        total_time=total_seconds,
                        started_at=session.start_time,
                        completed_at=completed_at
                    ))

                    question_attempts = []
                    for index, answer in sorted(participant.answers.items()):
                        if not 0 <= index < len(session.questions):
                            self.logger.warning(
                                f"Answer to unknown question index {index} by user {participant.user_id} "
                                f"in session {session.id}; not saved",
                                extra={'event_type': 'answer_unmapped', 'session_id': session.id}
                            )
                            continue
                        question_attempts.append(QuestionAttempt(
                            id=str(uuid.uuid4()),
                            quiz_attempt_id=attempt.id,
                            question_id=session.questions[index].id,
                            selected_answer=answer.selected_answer,
                            is_correct=answer.is_correct,
                            time_spent=answer.time_spent,
                            points_earned=answer.points_earned,
                            question_started_at=answer.question_started_at,
                            answered_at=answer.answered_at,
                            answer_rank=answer.answer_rank,
                            was_fastest_correct=answer.was_fastest_correct
                        ))
                    if question_attempts:
                        await self.repository.create_question_attempts(question_attempts)
                saved += 1
            except Exception as e:
                self.logger.error(
                    f"Failed to save quiz attempt for user {participant.user_id} in session {session.id}: {e}",
                    extra={'event_type': 'attempt_save_failed', 'session_id': session.id,
                           'user_id': participant.user_id}
                )
                continue

        self.logger.info(f"Saved {saved}/{len(ranked)} quiz attempts for session {session.id}")
        return saved

    async def _update_leaderboard_scores(self, ranked: List[ParticipantData], total_seconds: int) -> None:
        if self.leaderboard is None:
            return
        for participant in ranked:
            for period in LeaderboardPeriod:
                try:
                    await self.leaderboard.update_score(
                        participant.user_id, period, participant.score, total_seconds
                    )
                except Exception as e:
                    self.logger.error(
                        f"Failed to update {period.value} leaderboard for user {participant.user_id}: {e}"
                    )

    async def _resolve_user(self, user_id: str):
        if self.client is None:
            raise QuizPermissionError("Cannot look up the quiz owner right now.")
        try:
            numeric_id = int(user_id)
        except (TypeError, ValueError):
            raise QuizPermissionError(f"Quiz owner {user_id} is not a valid user.") from None

        user = self.client.get_user(numeric_id)
        if user is not None:
            return user
        try:
            return await self.client.fetch_user(numeric_id)
        except discord.HTTPException:
            raise QuizPermissionError(f"Quiz owner {user_id} could not be found.") from None

    async def _parse_button(self, interaction: discord.Interaction, expected_action: str = None):
        custom_id = (interaction.data or {}).get('custom_id', '')
        try:
            button = views.parse_quiz_custom_id(custom_id)
        except ValidationError as e:
            await self._reply(interaction, str(e))
            return None
        if expected_action is not None and button.action != expected_action:
            await self._reply(interaction, "Invalid button interaction.")
            return None
        return button

    async def _reply(self, interaction: discord.Interaction, content: str = None,
                     embed: discord.Embed = None) -> None:
        """Send an ephemeral reply, as a followup if the interaction was already answered."""
        kwargs = {'ephemeral': True}
        if content is not None:
            kwargs['content'] = content
        if embed is not None:
            kwargs['embed'] = embed
        try:
            if interaction.response.is_done():
                await interaction.followup.send(**kwargs)
            else:
                await interaction.response.send_message(**kwargs)
        except discord.HTTPException as e:
            self.logger.error(f"Failed to reply to interaction: {e}")

    async def _safe_send(self, channel, content: str = None, **kwargs):
        if channel is None:
            return None
        try:
            return await channel.send(content=content, **kwargs)
        except discord.HTTPException as e:
            self.logger.error(f"Failed to send message to channel {getattr(channel, 'id', None)}: {e}")
            return None
