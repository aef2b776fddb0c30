"""
Unit tests for QuizController session lifecycle, answers and results.
"""
import asyncio
import logging
import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, Mock, patch

from trivia_bot import views
from trivia_bot.config_manager import ConfigManager
from trivia_bot.data_manager import InMemoryRepository
from trivia_bot.errors import (
    NotFoundError, PersistenceError, QuizPermissionError, SessionNotFoundError, ValidationError,
)
from trivia_bot.leaderboard import LeaderboardService, week_number
from trivia_bot.models import LeaderboardPeriod, TimerKey, TimerKind, utc_now
from trivia_bot.quiz_controller import (
    ERROR_MESSAGE, NO_PARTICIPANTS_MESSAGE, STOPPED_MESSAGE, TOTAL_TIMEOUT_MESSAGE, QuizController,
)
from tests.test_fixtures import (
    MockDiscordObjects, TestFixtures, reply_text, sent_contents, sent_embeds,
)

OWNER_ID = 555
CORRECT_OPTIONS = [1, 2, 2]


def embed_titles(channel):
    return [embed.title for embed in sent_embeds(channel)]


class QuizControllerTestCase(unittest.IsolatedAsyncioTestCase):
    """Shared controller setup backed by a real in-memory repository."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.repository = InMemoryRepository()
        self.config_manager = ConfigManager()
        self.config_manager.set_result_delay(0)
        self.leaderboard = Mock(spec=LeaderboardService)
        self.leaderboard.update_score = AsyncMock()
        self.owner = MockDiscordObjects.create_mock_user(OWNER_ID, "owner")
        self.client = MockDiscordObjects.create_mock_client({OWNER_ID: self.owner})
        self.clock = Mock(return_value=100.0)
        self.controller = QuizController(
            self.repository, self.config_manager,
            leaderboard=self.leaderboard, client=self.client, clock=self.clock
        )
        self.quiz_config = TestFixtures.create_quiz_config()
        self.quiz = await self.repository.create_quiz_with_questions(
            self.quiz_config.title, self.quiz_config.questions
        )
        self.channel = MockDiscordObjects.create_mock_channel()

    async def asyncTearDown(self):
        self.controller.shutdown()
        logging.disable(logging.NOTSET)

    async def start_public(self, wait_seconds=30):
        return await self.controller.start(
            self.channel, self.quiz_config, quiz_id=self.quiz.id, wait_seconds=wait_seconds
        )

    async def join(self, session, user_id):
        interaction = MockDiscordObjects.create_mock_interaction(
            views.join_custom_id(session.id), user_id=user_id, user_name=f"user{user_id}"
        )
        await self.controller.handle_join(interaction)
        return interaction

    async def start_running(self, users=(1, 2)):
        session = await self.start_public()
        for user_id in users:
            await self.join(session, user_id)
        await self.controller.start_quiz_questions(session, self.channel)
        return session

    async def answer(self, session, user_id, option, question_index=None, seconds=0, message=None):
        index = session.current_question_index if question_index is None else question_index
        interaction = MockDiscordObjects.create_mock_interaction(
            views.answer_custom_id(session.id, index, option),
            user_id=user_id,
            created_at=session.question_start_time + timedelta(seconds=seconds),
            message=message or MockDiscordObjects.create_mock_message()
        )
        await self.controller.handle_answer(interaction)
        return interaction

    async def play_to_end(self, session, correct_users=(1,)):
        for index, option in enumerate(CORRECT_OPTIONS):
            for user_id in correct_users:
                await self.answer(session, user_id, option, seconds=2)
            await self.controller.handle_question_timeout(session, self.channel, question_index=index)


class TestJoinPhase(QuizControllerTestCase):
    """Test cases for starting a quiz and joining it."""

    async def test_start_registers_session_and_join_timer(self):
        session = await self.start_public()

        self.assertIs(self.controller.get_session(session.id), session)
        self.assertIs(self.controller.get_session_for_channel(self.channel.id), session)
        self.assertTrue(session.is_waiting)
        self.assertIsNotNone(session.message_id)
        self.assertTrue(self.controller.timers.has_timer(TimerKey(session.id, TimerKind.JOIN)))
        self.assertEqual(embed_titles(self.channel), ["🎯 Test Quiz"])

    async def test_start_without_quiz_id_rejected(self):
        with self.assertRaises(ValidationError):
            await self.controller.start(self.channel, self.quiz_config)
        self.assertEqual(len(self.controller.registry), 0)

    async def test_start_with_persist_saves_quiz(self):
        session = await self.controller.start(
            self.channel, TestFixtures.create_quiz_config("Fresh Quiz"), persist=True
        )

        quiz = await self.repository.find_quiz_by_title("Fresh Quiz")
        self.assertIsNotNone(quiz)
        self.assertEqual(session.quiz_id, quiz.id)

    async def test_join_and_duplicate_join(self):
        session = await self.start_public()

        first = await self.join(session, 1)
        second = await self.join(session, 1)

        self.assertEqual(reply_text(first), "✅ You have joined the quiz!")
        self.assertEqual(reply_text(second), "You have already joined this quiz!")
        self.assertEqual(list(session.participants), ["1"])

    async def test_join_updates_participant_count(self):
        session = await self.start_public()
        join_message = MockDiscordObjects.create_mock_message(
            embeds=[views.build_join_embed(self.quiz_config, 30, 30)]
        )
        interaction = MockDiscordObjects.create_mock_interaction(
            views.join_custom_id(session.id), user_id=1, message=join_message
        )

        await self.controller.handle_join(interaction)

        edited = join_message.edit.call_args.kwargs['embed']
        self.assertEqual({f.name: f.value for f in edited.fields}["Participants"], "1")

    async def test_join_after_start_rejected(self):
        session = await self.start_running(users=(1,))

        interaction = await self.join(session, 2)

        self.assertEqual(reply_text(interaction), "Quiz session not found or not accepting participants.")
        self.assertNotIn("2", session.participants)

    async def test_double_start_now_shows_one_question(self):
        session = await self.start_public()
        await self.join(session, 1)
        clicks = [
            MockDiscordObjects.create_mock_interaction(views.start_custom_id(session.id), user_id=user_id)
            for user_id in (1, 2)
        ]

        await asyncio.gather(*(self.controller.handle_manual_start(click) for click in clicks))

        self.assertEqual(embed_titles(self.channel).count("Question 1 of 3"), 1)
        self.assertEqual(
            sorted(reply_text(click) for click in clicks),
            ["Quiz session not found or already started.", "🚀 Starting the quiz!"]
        )
        self.assertFalse(self.controller.timers.has_timer(TimerKey(session.id, TimerKind.JOIN)))

    async def test_join_timeout_without_participants_cancels(self):
        session = await self.start_public(wait_seconds=0)

        await asyncio.sleep(0.05)

        self.assertNotIn(session.id, self.controller.registry)
        self.assertFalse(session.is_active)
        self.assertIn(NO_PARTICIPANTS_MESSAGE, sent_contents(self.channel))
        self.assertEqual(await self.repository.list_quiz_attempts(completed_only=False), [])
        self.leaderboard.update_score.assert_not_awaited()

    async def test_join_timeout_starts_questions(self):
        session = await self.start_public(wait_seconds=0)
        await self.join(session, 1)

        await asyncio.sleep(0.05)

        self.assertFalse(session.is_waiting)
        self.assertIn("Question 1 of 3", embed_titles(self.channel))
        self.assertTrue(self.controller.timers.has_timer(TimerKey(session.id, TimerKind.QUESTION, 0)))


    async def test_start_time_is_creation_time(self):
        session = await self.start_public()
        created = session.start_time
        await self.join(session, 1)

        await self.controller.start_quiz_questions(session, self.channel)
        self.assertEqual(session.start_time, created)

        await self.play_to_end(session)
        attempt = (await self.repository.list_quiz_attempts())[0]
        self.assertEqual(attempt.started_at, created)


class TestAnswers(QuizControllerTestCase):
    """Test cases for answer validation and scoring."""

    async def test_speed_bonus_uses_interaction_timestamps(self):
        self.config_manager.set_speed_bonus_multiplier(0.5)
        session = await self.start_running()

        fast = await self.answer(session, 1, 1, seconds=5)
        slow = await self.answer(session, 2, 1, seconds=15)

        self.assertEqual(session.participants["1"].score, 14)
        self.assertEqual(session.participants["2"].score, 12)
        self.assertEqual(reply_text(fast), "✅ Correct! (+14 points) 🏃 **Fastest correct answer!**")
        self.assertEqual(reply_text(slow), "✅ Correct! (+12 points)")

    async def test_answer_ranks_and_fastest_correct(self):
        session = await self.start_running(users=(1, 2, 3))

        await self.answer(session, 1, 0, seconds=1)
        await self.answer(session, 2, 1, seconds=2)
        await self.answer(session, 3, 1, seconds=3)

        answers = [session.participants[u].answers[0] for u in ("1", "2", "3")]
        self.assertEqual([a.answer_rank for a in answers], [1, 2, 3])
        self.assertEqual([a.was_fastest_correct for a in answers], [False, True, False])
        self.assertEqual(session.fastest_correct_answer_id, "2")

    async def test_incorrect_answer(self):
        session = await self.start_running()

        interaction = await self.answer(session, 1, 0)

        self.assertEqual(reply_text(interaction), "❌ Incorrect!")
        self.assertEqual(session.participants["1"].score, 0)
        self.assertFalse(session.participants["1"].answers[0].is_correct)

    async def test_duplicate_answer_rejected(self):
        session = await self.start_running()
        await self.answer(session, 1, 1)

        interaction = await self.answer(session, 1, 0)

        self.assertEqual(reply_text(interaction), "You have already answered this question.")
        self.assertTrue(session.participants["1"].answers[0].is_correct)

    async def test_non_participant_rejected(self):
        session = await self.start_running()

        interaction = await self.answer(session, 99, 1)

        self.assertEqual(reply_text(interaction), "You are not a participant in this quiz.")

    async def test_stale_question_rejected(self):
        session = await self.start_running()

        interaction = await self.answer(session, 1, 1, question_index=1)

        self.assertEqual(reply_text(interaction), "This question is no longer accepting answers.")
        self.assertEqual(session.participants["1"].answers, {})

    async def test_answer_before_start_rejected(self):
        session = await self.start_public()
        await self.join(session, 1)
        interaction = MockDiscordObjects.create_mock_interaction(
            views.answer_custom_id(session.id, 0, 1), user_id=1
        )

        await self.controller.handle_answer(interaction)

        self.assertEqual(reply_text(interaction), "Quiz session not found or not accepting answers.")

    async def test_invalid_option_rejected(self):
        session = await self.start_running()

        interaction = await self.answer(session, 1, 7)

        self.assertEqual(reply_text(interaction), "Invalid answer option.")

    async def test_all_answers_do_not_close_question(self):
        session = await self.start_running()

        await self.answer(session, 1, 1)
        await self.answer(session, 2, 1)

        self.assertEqual(session.current_question_index, 0)
        self.assertNotIn("⏰ Time's Up!", embed_titles(self.channel))
        self.assertTrue(self.controller.timers.has_timer(TimerKey(session.id, TimerKind.QUESTION, 0)))

    async def test_progress_updates_throttled(self):
        session = await self.start_running()
        message = MockDiscordObjects.create_mock_message(
            embeds=[views.build_question_embed(session.current_question, 0, 3, 30, 2)]
        )

        await self.answer(session, 1, 1, message=message)
        self.clock.return_value = 100.5
        await self.answer(session, 2, 1, message=message)

        self.assertEqual(message.edit.await_count, 1)
        self.assertIn("1 of 2 answered", [f.value for f in message.edit.call_args.kwargs['embed'].fields])

        self.clock.return_value = 101.6
        self.assertTrue(await self.controller.update_question_progress(session, self.channel, message))
        self.assertIn("2 of 2 answered", [f.value for f in message.edit.call_args.kwargs['embed'].fields])

    async def test_hint_replies(self):
        session = await self.start_running()
        hint = session.current_question.hints[0]

        interaction = MockDiscordObjects.create_mock_interaction(
            views.hint_custom_id(session.id, 0, hint.id), user_id=1
        )
        await self.controller.handle_hint(interaction)

        kwargs = interaction.response.send_message.call_args.kwargs
        self.assertTrue(kwargs['ephemeral'])
        self.assertEqual(kwargs['embed'].title, "💡 Arithmetic")

        missing = MockDiscordObjects.create_mock_interaction(views.hint_custom_id(session.id, 0, "nope"))
        await self.controller.handle_hint(missing)
        self.assertEqual(reply_text(missing), "Hint not found.")

        await self.controller.handle_question_timeout(session, self.channel, question_index=0)
        stale = MockDiscordObjects.create_mock_interaction(views.hint_custom_id(session.id, 0, hint.id))
        await self.controller.handle_hint(stale)
        self.assertEqual(reply_text(stale), "This hint is for a previous question.")


class TestQuestionFlow(QuizControllerTestCase):
    """Test cases for question timeouts, quiz completion and stopping."""

    async def test_duplicate_timeout_reveals_once(self):
        session = await self.start_running()

        await asyncio.gather(
            self.controller.handle_question_timeout(session, self.channel, question_index=0),
            self.controller.handle_question_timeout(session, self.channel, question_index=0),
        )

        self.assertEqual(embed_titles(self.channel).count("⏰ Time's Up!"), 1)
        self.assertEqual(session.current_question_index, 1)
        self.assertEqual(embed_titles(self.channel).count("Question 2 of 3"), 1)

    async def test_stale_timeout_ignored(self):
        session = await self.start_running()

        await self.controller.handle_question_timeout(session, self.channel, question_index=1)

        self.assertEqual(session.current_question_index, 0)
        self.assertNotIn("⏰ Time's Up!", embed_titles(self.channel))

    async def test_full_quiz_saves_attempts_and_updates_leaderboard(self):
        session = await self.start_running()

        await self.play_to_end(session)

        self.assertNotIn(session.id, self.controller.registry)
        self.assertFalse(session.is_active)
        self.assertIn("🏁 Quiz Complete!", embed_titles(self.channel))
        self.assertEqual(self.controller.timers.active_keys(session.id), [])

        attempts = {a.user_id: a for a in await self.repository.list_quiz_attempts()}
        self.assertEqual(set(attempts), {"1", "2"})
        self.assertEqual(attempts["1"].total_score, session.participants["1"].score)
        self.assertEqual(len(attempts["1"].question_attempts), 3)
        self.assertTrue(all(q.is_correct for q in attempts["1"].question_attempts))
        self.assertEqual(attempts["2"].question_attempts, [])
        self.assertEqual(self.leaderboard.update_score.await_count, 8)

    async def test_end_quiz_runs_once(self):
        session = await self.start_running(users=(1,))

        await self.controller.end_quiz(session, self.channel)
        await self.controller.end_quiz(session, self.channel)

        self.assertEqual(embed_titles(self.channel).count("🏁 Quiz Complete!"), 1)
        self.assertEqual(len(await self.repository.list_quiz_attempts()), 1)

    async def test_attempt_failure_does_not_block_others(self):
        session = await self.start_running()
        original = self.repository.create_quiz_attempt

        async def flaky_create(attempt):
            if attempt.user_id == "1":
                raise PersistenceError("database unavailable")
            return await original(attempt)

        self.repository.create_quiz_attempt = flaky_create
        await self.play_to_end(session, correct_users=(1, 2))

        attempts = await self.repository.list_quiz_attempts()
        self.assertEqual([a.user_id for a in attempts], ["2"])
        self.assertIsNone(await self.repository.get_user("1"))
        self.assertIsNotNone(await self.repository.get_user("2"))
        self.assertNotIn(session.id, self.controller.registry)

    async def test_leaderboard_failure_is_logged(self):
        self.leaderboard.update_score.side_effect = PersistenceError("down")
        session = await self.start_running(users=(1,))

        await self.play_to_end(session)

        self.assertNotIn(session.id, self.controller.registry)
        self.assertEqual(len(await self.repository.list_quiz_attempts()), 1)

    async def test_total_timeout_ends_quiz(self):
        self.quiz_config.time_limit = 300
        session = await self.start_running()
        self.assertTrue(self.controller.timers.has_timer(TimerKey(session.id, TimerKind.TOTAL)))
        await self.answer(session, 1, 1)

        await self.controller.handle_total_timeout(session, self.channel)

        self.assertIn(TOTAL_TIMEOUT_MESSAGE, sent_contents(self.channel))
        self.assertIn("🏁 Quiz Complete!", embed_titles(self.channel))
        self.assertEqual(self.controller.timers.active_keys(session.id), [])
        self.assertEqual(len(await self.repository.list_quiz_attempts()), 2)

    async def test_stop_unknown_session(self):
        with self.assertRaises(SessionNotFoundError):
            await self.controller.stop("missing")
        self.assertTrue(issubclass(SessionNotFoundError, NotFoundError))

    async def test_stop_discards_progress(self):
        session = await self.start_running()
        await self.answer(session, 1, 1)

        stopped = await self.controller.stop(session.id)

        self.assertIs(stopped, session)
        self.assertIn(STOPPED_MESSAGE, sent_contents(self.channel))
        self.assertNotIn(session.id, self.controller.registry)
        self.assertEqual(self.controller.timers.active_keys(session.id), [])
        self.assertEqual(await self.repository.list_quiz_attempts(completed_only=False), [])
        self.leaderboard.update_score.assert_not_awaited()

        await self.controller.handle_question_timeout(session, self.channel, question_index=0)
        self.assertNotIn("⏰ Time's Up!", embed_titles(self.channel))

    async def test_timer_error_cancels_session(self):
        session = await self.start_public(wait_seconds=0)
        await self.join(session, 1)

        with patch.object(self.controller, 'start_quiz_questions', AsyncMock(side_effect=RuntimeError("boom"))):
            await asyncio.sleep(0.05)

        self.assertFalse(session.is_active)
        self.assertNotIn(session.id, self.controller.registry)
        self.assertEqual(self.controller.timers.active_keys(session.id), [])
        self.assertIn(ERROR_MESSAGE, sent_contents(self.channel))
        self.assertNotIn("🏁 Quiz Complete!", embed_titles(self.channel))
        self.assertEqual(await self.repository.list_quiz_attempts(completed_only=False), [])
        self.leaderboard.update_score.assert_not_awaited()

    async def test_error_mid_quiz_saves_nothing(self):
        session = await self.start_running()
        await self.answer(session, 1, 1)
        failing = AsyncMock(side_effect=RuntimeError("render failed"))

        with self.assertRaises(RuntimeError):
            await self.controller._on_timer(session.id, failing, "question timeout")

        failing.assert_awaited_once_with(session, self.channel)
        self.assertNotIn(session.id, self.controller.registry)
        self.assertEqual(self.controller.timers.active_keys(session.id), [])
        self.assertEqual(await self.repository.list_quiz_attempts(completed_only=False), [])
        self.leaderboard.update_score.assert_not_awaited()


class TestResultsReachLeaderboard(QuizControllerTestCase):
    """Test cases for finished quizzes feeding a real LeaderboardService."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.leaderboard = LeaderboardService(self.repository)
        self.controller.leaderboard = self.leaderboard

    async def test_user_stats_match_saved_attempts(self):
        await self.play_to_end(await self.start_running(), correct_users=(1,))
        await self.play_to_end(await self.start_running(), correct_users=(1, 2))

        attempts = await self.repository.list_quiz_attempts()
        saved_totals = {
            user_id: sum(a.total_score for a in attempts if a.user_id == user_id)
            for user_id in ("1", "2")
        }
        self.assertEqual(len(attempts), 4)
        self.assertGreater(saved_totals["1"], saved_totals["2"])

        for user_id, total in saved_totals.items():
            stats = await self.leaderboard.get_user_stats(user_id)
            self.assertEqual(stats.total_score, total)
            self.assertEqual(stats.total_quizzes, 2)

        weekly = await self.leaderboard.get_leaderboard(LeaderboardPeriod.WEEKLY)
        self.assertEqual([(e.user_id, e.rank) for e in weekly], [("1", 1), ("2", 2)])
        self.assertEqual([e.total_score for e in weekly], [saved_totals["1"], saved_totals["2"]])

        year, week = week_number(utc_now())
        score = await self.repository.find_score("1", LeaderboardPeriod.WEEKLY, year, week=week)
        self.assertEqual(score.total_score, saved_totals["1"])
        self.assertEqual(score.total_quizzes, 2)


class TestPrivateQuiz(QuizControllerTestCase):
    """Test cases for private quizzes run in direct messages."""

    async def start_private(self, owner_user_id=str(OWNER_ID)):
        return await self.controller.start(
            self.channel, self.quiz_config, quiz_id=self.quiz.id,
            is_private=True, owner_user_id=owner_user_id
        )

    async def test_private_quiz_runs_in_direct_messages(self):
        session = await self.start_private()
        dm_channel = self.owner.create_dm.return_value

        self.assertTrue(session.is_private)
        self.assertFalse(session.is_waiting)
        self.assertEqual(list(session.participants), [str(OWNER_ID)])
        self.assertEqual(embed_titles(dm_channel), ["Question 1 of 3"])
        self.channel.send.assert_not_called()

    async def test_private_results_sent_to_owner(self):
        session = await self.start_private()
        dm_channel = self.owner.create_dm.return_value

        for index, option in enumerate(CORRECT_OPTIONS):
            await self.answer(session, OWNER_ID, option, seconds=1)
            await self.controller.handle_question_timeout(session, dm_channel, question_index=index)

        final = self.owner.send.call_args.kwargs['embed']
        self.assertEqual(final.title, "🏁 Quiz Complete!")
        self.assertEqual(len(await self.repository.list_quiz_attempts()), 1)
        self.leaderboard.update_score.assert_not_awaited()

    async def test_one_private_quiz_per_owner(self):
        first = await self.start_private()

        with self.assertRaises(ValidationError):
            await self.start_private()

        self.assertEqual(len(self.controller.registry), 1)
        self.assertIs(self.controller.get_private_session_for_owner(OWNER_ID), first)

        await self.controller.stop(first.id)
        second = await self.start_private()
        self.assertIsNot(second, first)

    async def test_private_quiz_requires_resolvable_owner(self):
        with self.assertRaises(QuizPermissionError):
            await self.start_private(owner_user_id="999")
        with self.assertRaises(QuizPermissionError):
            await self.start_private(owner_user_id=None)

        self.assertEqual(len(self.controller.registry), 0)


class TestButtonRouting(QuizControllerTestCase):
    """Test cases for quiz button dispatch."""

    async def test_unrelated_custom_id_not_handled(self):
        interaction = MockDiscordObjects.create_mock_interaction("leaderboard_nav_weekly_2")

        self.assertFalse(await self.controller.handle_button_interaction(interaction))

    async def test_routes_join(self):
        session = await self.start_public()
        interaction = MockDiscordObjects.create_mock_interaction(views.join_custom_id(session.id), user_id=4)

        self.assertTrue(await self.controller.handle_button_interaction(interaction))
        self.assertIn("4", session.participants)

    async def test_handler_error_replied_to_user(self):
        interaction = MockDiscordObjects.create_mock_interaction("quiz_join_abc")

        with patch.object(self.controller, 'handle_join', AsyncMock(side_effect=ValidationError("bad button"))):
            handled = await self.controller.handle_button_interaction(interaction)

        self.assertTrue(handled)
        self.assertEqual(reply_text(interaction), "❌ bad button")

    async def test_malformed_answer_id(self):
        interaction = MockDiscordObjects.create_mock_interaction(views.join_custom_id("abc"))

        await self.controller.handle_answer(interaction)

        self.assertEqual(reply_text(interaction), "Invalid button interaction.")


if __name__ == '__main__':
    unittest.main()
