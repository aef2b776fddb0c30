"""
Test fixtures and sample data for Discord Trivia Bot tests.
"""
import itertools
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import Mock, AsyncMock
import discord

from trivia_bot.models import (
    AnswerData, HintData, ParticipantData, Question, QuestionData, QuizConfig,
    QuizSession, utc_now,
)


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_question_data() -> List[QuestionData]:
        """Create sample question content for testing."""
        return [
            QuestionData(
                question_text="What is 2+2?",
                options=["3", "4", "5", "6"],
                correct_answer=1,
                points=10,
                time_limit=30,
                hints=[HintData(title="Arithmetic", text="Count on your fingers.")]
            ),
            QuestionData(
                question_text="What is the capital of France?",
                options=["London", "Berlin", "Paris", "Madrid"],
                correct_answer=2,
                points=10,
                time_limit=30
            ),
            QuestionData(
                question_text="What is the largest planet?",
                options=["Earth", "Mars", "Jupiter", "Saturn"],
                correct_answer=2,
                points=20
            ),
        ]

    @staticmethod
    def create_quiz_config(title: str = "Test Quiz", time_limit: Optional[int] = None) -> QuizConfig:
        return QuizConfig(
            title=title,
            description="A quiz for testing",
            time_limit=time_limit,
            questions=TestFixtures.create_question_data()
        )

    @staticmethod
    def create_question(question_id: str = "q1", quiz_id: str = "quiz1", points: int = 10,
                        time_limit: Optional[int] = 30) -> Question:
        return Question(
            id=question_id,
            quiz_id=quiz_id,
            question_text="What is 2+2?",
            options=["3", "4", "5", "6"],
            correct_answer=1,
            points=points,
            time_limit=time_limit
        )

    @staticmethod
    def create_participant(user_id: str, username: str = None, score: int = 0,
                           times: List[int] = None) -> ParticipantData:
        """Create a participant whose answers took the given number of seconds."""
        participant = ParticipantData(user_id=user_id, username=username or f"user{user_id}", score=score)
        started = utc_now()
        for index, seconds in enumerate(times or []):
            participant.answers[index] = AnswerData(
                question_index=index,
                selected_answer=0,
                is_correct=True,
                time_spent=seconds,
                points_earned=0,
                question_started_at=started,
                answered_at=started + timedelta(seconds=seconds),
                answer_rank=1
            )
        return participant

    @staticmethod
    def create_quiz_session(session_id: str = "session1", quiz_id: str = "quiz1",
                            channel_id: int = 12345) -> QuizSession:
        return QuizSession(id=session_id, quiz_id=quiz_id, channel_id=channel_id)

    @staticmethod
    def create_valid_quiz_json() -> Dict:
        """Create valid quiz JSON structure."""
        return {
            "title": "Capitals",
            "description": "World capitals",
            "timeLimit": 120,
            "questions": [
                {
                    "questionText": "What is the capital of Japan?",
                    "options": ["Kyoto", "Tokyo", "Osaka"],
                    "correctAnswer": 1,
                    "points": 15,
                    "timeLimit": 20,
                    "hints": [{"title": "Hint", "text": "It hosted the 2020 Olympics."}]
                },
                {
                    "questionText": "What is the capital of Canada?",
                    "options": ["Toronto", "Ottawa", "Vancouver", "Montreal"],
                    "correctAnswer": 1
                }
            ]
        }

    @staticmethod
    def create_invalid_quiz_json_structures() -> List:
        """Create various invalid quiz JSON structures for testing."""
        return [
            # Not an object
            ["not", "an", "object"],
            # Missing title
            {"questions": [{"questionText": "Q?", "options": ["a"], "correctAnswer": 0}]},
            # Empty questions
            {"title": "Empty", "questions": []},
            # Options not a list
            {"title": "Bad", "questions": [{"questionText": "Q?", "options": "abc", "correctAnswer": 0}]},
            # Correct answer out of range
            {"title": "Bad", "questions": [{"questionText": "Q?", "options": ["a", "b"], "correctAnswer": 2}]},
            # Negative points
            {"title": "Bad", "questions": [
                {"questionText": "Q?", "options": ["a", "b"], "correctAnswer": 0, "points": -5}
            ]},
            # More options than fit in the button rows
            {"title": "Bad", "questions": [
                {"questionText": "Q?", "options": [str(n) for n in range(21)], "correctAnswer": 0}
            ]},
        ]

    @staticmethod
    def create_temp_quiz_files(temp_dir: str) -> Dict[str, Path]:
        """Create temporary quiz files for testing."""
        quiz_files = {}

        valid_file = Path(temp_dir) / "capitals.json"
        with open(valid_file, 'w', encoding='utf-8') as f:
            json.dump(TestFixtures.create_valid_quiz_json(), f)
        quiz_files["valid"] = valid_file

        invalid_file = Path(temp_dir) / "invalid.json"
        with open(invalid_file, 'w', encoding='utf-8') as f:
            f.write("{ invalid json }")
        quiz_files["invalid"] = invalid_file

        invalid_structure_file = Path(temp_dir) / "invalid_structure.json"
        with open(invalid_structure_file, 'w', encoding='utf-8') as f:
            json.dump(TestFixtures.create_invalid_quiz_json_structures()[4], f)
        quiz_files["invalid_structure"] = invalid_structure_file

        non_json_file = Path(temp_dir) / "not_a_quiz.txt"
        with open(non_json_file, 'w', encoding='utf-8') as f:
            f.write("This is not a JSON file")
        quiz_files["non_json"] = non_json_file

        return quiz_files


class MockDiscordObjects:
    """Mock Discord objects for testing bot functionality."""

    _message_ids = itertools.count(1000)

    @staticmethod
    def create_mock_interaction(custom_id: str = "", user_id: int = 67890, user_name: str = "tester",
                                channel_id: int = 12345, created_at: datetime = None,
                                message: Mock = None) -> Mock:
        """Create mock Discord component interaction."""
        interaction = Mock(spec=discord.Interaction)
        interaction.type = discord.InteractionType.component
        interaction.data = {'custom_id': custom_id}
        interaction.channel_id = channel_id
        interaction.user = Mock()
        interaction.user.id = user_id
        interaction.user.name = user_name
        interaction.created_at = created_at or utc_now()
        interaction.message = message
        interaction.response = Mock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()
        interaction.response.edit_message = AsyncMock()
        interaction.response.defer = AsyncMock()
        interaction.followup = Mock()
        interaction.followup.send = AsyncMock()
        return interaction

    @staticmethod
    def create_mock_message(message_id: int = None, embeds: List[discord.Embed] = None,
                            created_at: datetime = None) -> Mock:
        """Create mock Discord message."""
        message = Mock(spec=discord.Message)
        message.id = message_id if message_id is not None else next(MockDiscordObjects._message_ids)
        message.embeds = embeds or []
        message.created_at = created_at or utc_now()
        message.edit = AsyncMock()
        message.delete = AsyncMock()
        return message

    @staticmethod
    def create_mock_channel(channel_id: int = 12345) -> Mock:
        """
        Create mock Discord channel.

        ``send`` returns a new mock message carrying the sent embed;
        ``fetch_message`` returns a fresh mock message with the requested id.
        """
        channel = Mock(spec=discord.TextChannel)
        channel.id = channel_id

        async def send(content=None, **kwargs):
            embed = kwargs.get('embed')
            return MockDiscordObjects.create_mock_message(embeds=[embed] if embed else [])

        channel.send = AsyncMock(side_effect=send)
        channel.fetch_message = AsyncMock(
            side_effect=lambda message_id: MockDiscordObjects.create_mock_message(message_id)
        )
        return channel

    @staticmethod
    def create_mock_user(user_id: int = 67890, name: str = "owner") -> Mock:
        """Create mock Discord user with a direct message channel."""
        user = Mock(spec=discord.User)
        user.id = user_id
        user.name = name
        dm_channel = MockDiscordObjects.create_mock_channel(channel_id=user_id + 1)
        user.dm_channel = None
        user.create_dm = AsyncMock(return_value=dm_channel)
        user.send = AsyncMock()
        return user

    @staticmethod
    def create_mock_client(users: Dict[int, Mock] = None) -> Mock:
        """Create mock Discord client that resolves the given users."""
        users = users or {}
        client = Mock(spec=discord.Client)
        client.get_user = Mock(side_effect=lambda user_id: users.get(user_id))
        client.fetch_user = AsyncMock(side_effect=discord.NotFound(Mock(status=404), "Unknown User"))
        client.get_channel = Mock(return_value=None)
        client.fetch_channel = AsyncMock(side_effect=discord.NotFound(Mock(status=404), "Unknown Channel"))
        return client


def sent_embeds(channel: Mock) -> List[discord.Embed]:
    """Embeds passed to ``channel.send`` in call order."""
    return [c.kwargs['embed'] for c in channel.send.call_args_list if c.kwargs.get('embed') is not None]


def sent_contents(channel: Mock) -> List[str]:
    contents = []
    for c in channel.send.call_args_list:
        content = c.kwargs.get('content', c.args[0] if c.args else None)
        if content:
            contents.append(content)
    return contents


def reply_text(interaction: Mock) -> Optional[str]:
    """Content of the last ephemeral reply sent for an interaction."""
    for sender in (interaction.followup.send, interaction.response.send_message):
        if sender.call_args is not None:
            return sender.call_args.kwargs.get('content')
    return None
