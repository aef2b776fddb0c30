import discord
from discord import app_commands
from discord.ext import commands
import logging
from typing import List, Literal, Optional
import os
from pathlib import Path

from .button_cleanup import ButtonCleanupService
from .config_manager import ConfigManager
from .data_manager import DataManager, InMemoryRepository, Repository
from .errors import TriviaBotError, ValidationError, get_user_friendly_error_message
from .leaderboard import LeaderboardService, parse_period
from .models import LeaderboardPeriod, QuestionData, Quiz, QuizConfig
from .quiz_controller import QuizController
from .quiz_engine import TimerManager
from .session_registry import SessionRegistry
from . import views

logger = logging.getLogger(__name__)

LEADERBOARD_FETCH_LIMIT = 50
QUIZ_LIST_LIMIT = 25
QUESTION_LIST_LIMIT = 25


def setup_logging(level: int = logging.INFO, log_directory: str = "logs"):
    """Set up console and file logging for the bot."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Console output
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),
        ]
    )

    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)

    return logger


def parse_options(text: str) -> List[str]:
    """Split a "|" separated option list, dropping blank entries."""
    return [option.strip() for option in text.split("|") if option.strip()]


class QuizBot(commands.Bot):
    """Discord bot for running timed multiple-choice trivia quizzes"""

    def __init__(self, config=None, repository: Optional[Repository] = None):
        # Slash commands and buttons only need the guilds intent
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.repository: Repository = repository or InMemoryRepository()

        self.config_manager: Optional[ConfigManager] = None
        self.data_manager: Optional[DataManager] = None
        self.leaderboard: Optional[LeaderboardService] = None
        self.button_cleanup: Optional[ButtonCleanupService] = None
        self.quiz_controller: Optional[QuizController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            self.config_manager = ConfigManager()
            self.apply_configuration()

            self.data_manager = DataManager(
                self.config_manager.get_quiz_directory(),
                default_points=self.config_manager.points_per_correct_answer
            )
            self.leaderboard = LeaderboardService(self.repository)
            self.button_cleanup = ButtonCleanupService(self)
            self.quiz_controller = QuizController(
                self.repository,
                self.config_manager,
                leaderboard=self.leaderboard,
                button_cleanup=self.button_cleanup,
                client=self,
                registry=SessionRegistry(),
                timers=TimerManager()
            )

            await self.load_quiz_data()
            self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    def apply_configuration(self):
        """Apply config.json and environment overrides; invalid values keep their defaults."""
        errors = self.config_manager.apply_config(self.app_config)
        errors += self.config_manager.load_from_env()
        for error in errors:
            logger.warning(f"Configuration ignored: {error}")

        validation = self.config_manager.validate_settings()
        if not validation['valid']:
            logger.warning(f"Configuration issues: {validation['issues']}")
        logger.info("Configuration applied")

    async def load_quiz_data(self):
        """Load quiz files and seed the repository with any new quizzes"""
        try:
            loaded_quizzes = self.data_manager.load_quiz_files()
            created = await self.data_manager.seed_repository(self.repository)
            logger.info(
                f"Loaded {len(loaded_quizzes)} quiz files from {self.data_manager.quiz_directory}, "
                f"{created} new quizzes seeded"
            )
        except Exception as e:
            logger.error(f"Error loading quiz data: {e}")
            # The bot still runs; quizzes already in the repository stay available

    def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands and their descriptions")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="ping", description="Check the bot's latency")
        async def ping_command(interaction: discord.Interaction):
            await self.handle_ping(interaction)

        quiz_group = app_commands.Group(name="quiz", description="Start, stop and browse quizzes")

        @quiz_group.command(name="start", description="Start a quiz in this channel")
        @app_commands.describe(
            quiz_id="ID of the quiz to start (see /quiz list)",
            wait_time="Seconds to wait for participants to join",
            total_time_limit="Overall time limit for the quiz in seconds",
            private="Run the quiz just for you in direct messages"
        )
        async def quiz_start_command(interaction: discord.Interaction, quiz_id: str,
                                     wait_time: Optional[int] = None,
                                     total_time_limit: Optional[int] = None,
                                     private: bool = False):
            await self.handle_quiz_start(interaction, quiz_id, wait_time, total_time_limit, private)

        @quiz_group.command(name="stop", description="Stop the quiz running in this channel (administrators only)")
        async def quiz_stop_command(interaction: discord.Interaction):
            await self.handle_quiz_stop(interaction)

        @quiz_group.command(name="list", description="List the available quizzes")
        async def quiz_list_command(interaction: discord.Interaction):
            await self.handle_quiz_list(interaction)

        @quiz_group.command(name="delete", description="Delete a quiz with its questions and results")
        @app_commands.describe(quiz_id="ID of the quiz to delete")
        async def quiz_delete_command(interaction: discord.Interaction, quiz_id: str):
            await self.handle_quiz_delete(interaction, quiz_id)

        @quiz_group.command(name="toggle", description="Enable or disable a quiz (administrators only)")
        @app_commands.describe(quiz_id="ID of the quiz to enable or disable")
        async def quiz_toggle_command(interaction: discord.Interaction, quiz_id: str):
            await self.handle_quiz_toggle(interaction, quiz_id)

        self.tree.add_command(quiz_group)

        question_group = app_commands.Group(name="question", description="Manage quiz questions and hints")

        @question_group.command(name="list", description="List the questions and hints of a quiz")
        @app_commands.describe(quiz_id="ID of the quiz")
        async def question_list_command(interaction: discord.Interaction, quiz_id: str):
            await self.handle_question_list(interaction, quiz_id)

        @question_group.command(name="add", description="Add a question to a quiz")
        @app_commands.describe(
            quiz_id="ID of the quiz",
            text="Question text",
            options="Answer options separated by |",
            correct_answer="Index of the correct option, starting at 0",
            points="Points for a correct answer",
            time_limit="Seconds to answer this question"
        )
        async def question_add_command(interaction: discord.Interaction, quiz_id: str, text: str,
                                       options: str, correct_answer: int,
                                       points: Optional[int] = None,
                                       time_limit: Optional[int] = None):
            await self.handle_question_add(interaction, quiz_id, text, options, correct_answer, points, time_limit)

        @question_group.command(name="delete", description="Delete a question from its quiz")
        @app_commands.describe(question_id="ID of the question (see /question list)")
        async def question_delete_command(interaction: discord.Interaction, question_id: str):
            await self.handle_question_delete(interaction, question_id)

        @question_group.command(name="hint-add", description="Add a hint to a question")
        @app_commands.describe(question_id="ID of the question", title="Hint button label", text="Hint text")
        async def hint_add_command(interaction: discord.Interaction, question_id: str, title: str, text: str):
            await self.handle_hint_add(interaction, question_id, title, text)

        @question_group.command(name="hint-delete", description="Delete a hint")
        @app_commands.describe(hint_id="ID of the hint (see /question list)")
        async def hint_delete_command(interaction: discord.Interaction, hint_id: str):
            await self.handle_hint_delete(interaction, hint_id)

        self.tree.add_command(question_group)

        @self.tree.command(name="leaderboard", description="Show the quiz leaderboard")
        @app_commands.describe(period="Leaderboard period", page="Page number")
        async def leaderboard_command(interaction: discord.Interaction,
                                      period: Literal['weekly', 'monthly', 'yearly', 'overall'] = 'weekly',
                                      page: int = 1):
            await self.handle_leaderboard(interaction, period, page)

        @self.tree.command(name="stats", description="Show quiz statistics for yourself or another user")
        async def stats_command(interaction: discord.Interaction, user: Optional[discord.User] = None):
            await self.handle_stats(interaction, user)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🤖 {self.user} is Ready and Online!")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
            print(f"⚡ Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")
            print(f"❌ Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def on_interaction(self, interaction: discord.Interaction):
        """Route button clicks by custom id prefix; slash commands go through the command tree."""
        if interaction.type != discord.InteractionType.component:
            return

        custom_id = (interaction.data or {}).get('custom_id', '')
        if custom_id.startswith('quiz_'):
            await self.quiz_controller.handle_button_interaction(interaction)
        elif custom_id.startswith('leaderboard_'):
            await self.handle_leaderboard_button(interaction)

    async def close(self):
        if self.quiz_controller is not None:
            self.quiz_controller.shutdown()
        await super().close()

    # Command handlers

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎯 Trivia Bot Commands",
                description="Commands for running and following quizzes",
                color=0x00ff00
            )
            help_embed.add_field(
                name="🎮 Quizzes",
                value=(
                    "`/quiz list` - Show the available quizzes\n"
                    "`/quiz start <quiz_id> [wait_time] [total_time_limit] [private]` - Start a quiz\n"
                    "`/quiz stop` - Stop the quiz in this channel (administrators only)"
                ),
                inline=False
            )
            help_embed.add_field(
                name="🛠️ Management",
                value=(
                    "`/quiz delete <quiz_id>` - Delete a quiz you own\n"
                    "`/quiz toggle <quiz_id>` - Enable or disable a quiz (administrators only)\n"
                    "`/question list <quiz_id>` - Show question and hint IDs\n"
                    "`/question add <quiz_id> <text> <options> <correct_answer>` - Add a question\n"
                    "`/question delete <question_id>` - Delete a question\n"
                    "`/question hint-add <question_id> <title> <text>` - Add a hint\n"
                    "`/question hint-delete <hint_id>` - Delete a hint"
                ),
                inline=False
            )
            help_embed.add_field(
                name="📊 Results",
                value=(
                    "`/leaderboard [period] [page]` - Weekly, monthly, yearly or overall rankings\n"
                    "`/stats [user]` - Quiz statistics for you or another user"
                ),
                inline=False
            )
            help_embed.add_field(
                name="🔧 Other",
                value="`/help` - Show this message\n`/ping` - Check the bot's latency",
                inline=False
            )
            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )
            help_embed.set_footer(text="Join a quiz with its Join button, then answer before time runs out!")

            await interaction.response.send_message(embed=help_embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help information", "❌ Help Error")

    async def handle_ping(self, interaction: discord.Interaction):
        """Handle /ping command"""
        await interaction.response.send_message(f"🏓 Pong! {round(self.latency * 1000)}ms", ephemeral=True)

    async def handle_quiz_start(self, interaction: discord.Interaction, quiz_id: str,
                                wait_time: Optional[int] = None,
                                total_time_limit: Optional[int] = None,
                                private: bool = False):
        """Handle /quiz start command"""
        try:
            if wait_time is not None and not (
                    ConfigManager.MIN_WAIT_TIME <= wait_time <= ConfigManager.MAX_WAIT_TIME):
                await self.send_warning_response(
                    interaction,
                    f"Wait time must be between {ConfigManager.MIN_WAIT_TIME} and "
                    f"{ConfigManager.MAX_WAIT_TIME} seconds."
                )
                return
            if total_time_limit is not None and total_time_limit <= 0:
                await self.send_warning_response(interaction, "Total time limit must be a positive number of seconds.")
                return

            user_id = str(interaction.user.id)
            quiz = await self.repository.get_quiz(quiz_id)
            if quiz is None or not quiz.is_active:
                await self.send_error_response(
                    interaction, f"Quiz `{quiz_id}` was not found. Use `/quiz list` to see available quizzes.",
                    "❌ Quiz Not Found"
                )
                return
            if quiz.private and quiz.owner_id != user_id:
                await self.send_error_response(interaction, "This quiz is private.", "❌ Permission Denied")
                return

            if private:
                if self.quiz_controller.get_private_session_for_owner(user_id) is not None:
                    await self.send_warning_response(
                        interaction,
                        "You already have a private quiz running in your direct messages. "
                        "Finish it before starting another.",
                        "⚠️ Quiz In Progress"
                    )
                    return
            else:
                existing = self.quiz_controller.get_session_for_channel(interaction.channel_id)
                if existing is not None:
                    await self.send_warning_response(
                        interaction,
                        "A quiz is already running in this channel. Wait for it to finish or ask an "
                        "administrator to use `/quiz stop`.",
                        "⚠️ Quiz In Progress"
                    )
                    return

            questions = await self.repository.get_questions(quiz.id)
            if not questions:
                await self.send_error_response(interaction, "This quiz has no questions.", "❌ Empty Quiz")
                return

            quiz_config = QuizConfig(
                title=quiz.title,
                description=quiz.description,
                time_limit=total_time_limit or quiz.time_limit,
                questions=[
                    QuestionData(
                        question_text=q.question_text,
                        options=q.options,
                        correct_answer=q.correct_answer,
                        points=q.points,
                        time_limit=q.time_limit
                    )
                    for q in questions
                ]
            )

            await interaction.response.defer(ephemeral=True)
            await self.quiz_controller.start(
                interaction.channel,
                quiz_config,
                quiz_id=quiz.id,
                wait_seconds=wait_time,
                is_private=private,
                owner_user_id=user_id if private else None
            )

            if private:
                await self.send_info_response(
                    interaction, f"**{quiz.title}** is starting in your direct messages!", "📬 Private Quiz"
                )
            else:
                await self.send_info_response(interaction, f"**{quiz.title}** is open for participants!", "🎯 Quiz Started")

        except TriviaBotError as e:
            await self.send_error_response(
                interaction, get_user_friendly_error_message(e, "quiz start"), "❌ Quiz Start Failed"
            )
        except discord.Forbidden:
            await self.send_error_response(
                interaction,
                "I can't send messages there. Check my channel permissions, or enable direct messages for private quizzes.",
                "❌ Permission Error"
            )
        except Exception as e:
            logger.error(f"Error in quiz start command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to start quiz", "❌ Quiz Start Error")

    async def handle_quiz_stop(self, interaction: discord.Interaction):
        """Handle /quiz stop command"""
        try:
            if not self.is_administrator(interaction):
                await self.send_error_response(
                    interaction, "Only administrators can stop quizzes.", "❌ Permission Denied"
                )
                return

            session = self.quiz_controller.get_session_for_channel(interaction.channel_id)
            if session is None:
                await self.send_info_response(
                    interaction, "There is no quiz running in this channel.", "ℹ️ No Active Quiz"
                )
                return

            await interaction.response.defer(ephemeral=True)
            await self.quiz_controller.stop(session.id)
            await self.send_info_response(interaction, "The quiz has been stopped.", "🛑 Quiz Stopped")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "quiz stop"))
        except Exception as e:
            logger.error(f"Error in quiz stop command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to stop quiz", "❌ Quiz Control Error")

    async def handle_quiz_list(self, interaction: discord.Interaction):
        """Handle /quiz list command"""
        try:
            quizzes = await self.repository.list_quizzes(
                active_only=True,
                include_private=False,
                owner_id=str(interaction.user.id),
                limit=QUIZ_LIST_LIMIT
            )
            if not quizzes:
                await self.send_info_response(interaction, "No quizzes are available yet.", "📚 Quizzes")
                return

            embed = discord.Embed(title="📚 Available Quizzes", color=views.COLOR_INFO)
            for quiz in quizzes:
                questions = await self.repository.get_questions(quiz.id)
                details = f"ID: `{quiz.id}`\nQuestions: {len(questions)}"
                if quiz.time_limit:
                    details += f" | Time limit: {quiz.time_limit}s"
                if quiz.private:
                    details += " | 🔒 Private"
                embed.add_field(name=quiz.title, value=details, inline=False)
            embed.set_footer(text="Start one with /quiz start <quiz_id>")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in quiz list command: {e}")
            await self.send_error_response(interaction, "Failed to list quizzes", "❌ Quiz List Error")

    # Quiz management

    @staticmethod
    def is_administrator(interaction: discord.Interaction) -> bool:
        permissions = getattr(interaction.user, 'guild_permissions', None)
        return permissions is not None and bool(permissions.administrator)

    def can_manage_quiz(self, interaction: discord.Interaction, quiz: Quiz) -> bool:
        """Administrators manage every quiz; other users only the quizzes they own."""
        if self.is_administrator(interaction):
            return True
        return quiz.owner_id is not None and quiz.owner_id == str(interaction.user.id)

    async def _managed_quiz(self, interaction: discord.Interaction, quiz_id: str) -> Optional[Quiz]:
        """Look up a quiz the user may change, replying with an error when they can't."""
        quiz = await self.repository.get_quiz(quiz_id)
        if quiz is None:
            await self.send_error_response(interaction, f"Quiz `{quiz_id}` was not found.", "❌ Quiz Not Found")
            return None
        if not self.can_manage_quiz(interaction, quiz):
            await self.send_error_response(
                interaction, "You can only change quizzes you own.", "❌ Permission Denied"
            )
            return None
        return quiz

    async def _managed_question(self, interaction: discord.Interaction, question_id: str):
        question = await self.repository.get_question(question_id)
        if question is None:
            await self.send_error_response(
                interaction, f"Question `{question_id}` was not found.", "❌ Question Not Found"
            )
            return None
        if await self._managed_quiz(interaction, question.quiz_id) is None:
            return None
        return question

    def _quiz_is_running(self, quiz_id: str) -> bool:
        return any(s.quiz_id == quiz_id for s in self.quiz_controller.get_all_active_sessions())

    async def handle_quiz_delete(self, interaction: discord.Interaction, quiz_id: str):
        """Handle /quiz delete command"""
        try:
            quiz = await self._managed_quiz(interaction, quiz_id)
            if quiz is None:
                return
            if self._quiz_is_running(quiz.id):
                await self.send_warning_response(
                    interaction, "This quiz is running right now. Stop it before deleting it.",
                    "⚠️ Quiz In Progress"
                )
                return

            await self.repository.delete_quiz(quiz.id)
            logger.info(
                f"Quiz {quiz.id} deleted by user {interaction.user.id}",
                extra={'event_type': 'quiz_deleted', 'quiz_id': quiz.id}
            )
            await self.send_info_response(interaction, f"**{quiz.title}** has been deleted.", "🗑️ Quiz Deleted")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "quiz delete"))
        except Exception as e:
            logger.error(f"Error in quiz delete command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to delete quiz", "❌ Quiz Delete Error")

    async def handle_quiz_toggle(self, interaction: discord.Interaction, quiz_id: str):
        """Handle /quiz toggle command"""
        try:
            if not self.is_administrator(interaction):
                await self.send_error_response(
                    interaction, "Only administrators can enable or disable quizzes.", "❌ Permission Denied"
                )
                return

            quiz = await self.repository.get_quiz(quiz_id)
            if quiz is None:
                await self.send_error_response(interaction, f"Quiz `{quiz_id}` was not found.", "❌ Quiz Not Found")
                return

            updated = await self.repository.update_quiz(quiz.id, is_active=not quiz.is_active)
            state = "enabled" if updated.is_active else "disabled"
            logger.info(f"Quiz {quiz.id} {state} by user {interaction.user.id}")
            await self.send_info_response(interaction, f"**{quiz.title}** is now {state}.", "🔁 Quiz Updated")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "quiz toggle"))
        except Exception as e:
            logger.error(f"Error in quiz toggle command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to update quiz", "❌ Quiz Update Error")

    async def handle_question_list(self, interaction: discord.Interaction, quiz_id: str):
        """Handle /question list command"""
        try:
            quiz = await self._managed_quiz(interaction, quiz_id)
            if quiz is None:
                return

            questions = await self.repository.get_questions(quiz.id)
            embed = discord.Embed(title=f"📝 {quiz.title}", color=views.COLOR_INFO)
            if not questions:
                embed.description = "This quiz has no questions yet."
            for position, question in enumerate(questions[:QUESTION_LIST_LIMIT], start=1):
                lines = [
                    f"ID: `{question.id}`",
                    f"Answer: {views.option_letter(question.correct_answer)}. "
                    f"{question.options[question.correct_answer]} | {question.points} pts",
                ]
                lines += [f"💡 {hint.title}: `{hint.id}`" for hint in question.hints]
                embed.add_field(
                    name=f"{position}. {question.question_text}"[:256],
                    value="\n".join(lines)[:1024],
                    inline=False
                )
            if len(questions) > QUESTION_LIST_LIMIT:
                embed.set_footer(text=f"Showing {QUESTION_LIST_LIMIT} of {len(questions)} questions")

            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in question list command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to list questions", "❌ Question List Error")

    async def handle_question_add(self, interaction: discord.Interaction, quiz_id: str, text: str,
                                  options: str, correct_answer: int,
                                  points: Optional[int] = None, time_limit: Optional[int] = None):
        """Handle /question add command"""
        try:
            quiz = await self._managed_quiz(interaction, quiz_id)
            if quiz is None:
                return
            if not text.strip():
                await self.send_warning_response(interaction, "The question needs some text.")
                return
            if (points is not None and points <= 0) or (time_limit is not None and time_limit <= 0):
                await self.send_warning_response(interaction, "Points and time limit must be positive numbers.")
                return

            question = await self.repository.add_question(quiz.id, QuestionData(
                question_text=text.strip(),
                options=parse_options(options),
                correct_answer=correct_answer,
                points=points or self.config_manager.points_per_correct_answer,
                time_limit=time_limit
            ))
            logger.info(
                f"Question {question.id} added to quiz {quiz.id}",
                extra={'event_type': 'question_added', 'quiz_id': quiz.id, 'question_id': question.id}
            )
            await self.send_info_response(
                interaction, f"Question added to **{quiz.title}**.\nID: `{question.id}`", "✅ Question Added"
            )

        except ValidationError as e:
            await self.send_error_response(interaction, str(e), "❌ Invalid Question")
        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "question add"))
        except Exception as e:
            logger.error(f"Error in question add command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to add question", "❌ Question Error")

    async def handle_question_delete(self, interaction: discord.Interaction, question_id: str):
        """Handle /question delete command"""
        try:
            question = await self._managed_question(interaction, question_id)
            if question is None:
                return

            await self.repository.delete_question(question.id)
            logger.info(f"Question {question.id} deleted from quiz {question.quiz_id}")
            await self.send_info_response(interaction, "The question has been deleted.", "🗑️ Question Deleted")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "question delete"))
        except Exception as e:
            logger.error(f"Error in question delete command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to delete question", "❌ Question Error")

    async def handle_hint_add(self, interaction: discord.Interaction, question_id: str, title: str, text: str):
        """Handle /question hint-add command"""
        try:
            question = await self._managed_question(interaction, question_id)
            if question is None:
                return
            if not title.strip() or not text.strip():
                await self.send_warning_response(interaction, "Hints need a title and some text.")
                return

            hint = await self.repository.add_hint(question.id, title.strip(), text.strip())
            logger.info(f"Hint {hint.id} added to question {question.id}")
            await self.send_info_response(interaction, f"Hint **{hint.title}** added.\nID: `{hint.id}`", "💡 Hint Added")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "hint add"))
        except Exception as e:
            logger.error(f"Error in hint add command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to add hint", "❌ Hint Error")

    async def handle_hint_delete(self, interaction: discord.Interaction, hint_id: str):
        """Handle /question hint-delete command"""
        try:
            hint = await self.repository.get_hint(hint_id)
            if hint is None:
                await self.send_error_response(interaction, f"Hint `{hint_id}` was not found.", "❌ Hint Not Found")
                return
            if await self._managed_question(interaction, hint.question_id) is None:
                return

            await self.repository.delete_hint(hint.id)
            logger.info(f"Hint {hint.id} deleted from question {hint.question_id}")
            await self.send_info_response(interaction, f"Hint **{hint.title}** deleted.", "🗑️ Hint Deleted")

        except TriviaBotError as e:
            await self.send_error_response(interaction, get_user_friendly_error_message(e, "hint delete"))
        except Exception as e:
            logger.error(f"Error in hint delete command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to delete hint", "❌ Hint Error")

    async def _render_leaderboard(self, period: LeaderboardPeriod, page: int):
        entries = await self.leaderboard.get_leaderboard(period, limit=LEADERBOARD_FETCH_LIMIT)
        total_pages = views.leaderboard_page_count(len(entries))
        page = min(max(1, page), total_pages)
        start = (page - 1) * views.LEADERBOARD_PAGE_SIZE
        page_entries = entries[start:start + views.LEADERBOARD_PAGE_SIZE]

        embed = self.leaderboard.create_leaderboard_embed(period, page_entries, page, total_pages)
        return embed, views.build_leaderboard_view(period, page, total_pages)

    async def handle_leaderboard(self, interaction: discord.Interaction, period: str = 'weekly', page: int = 1):
        """Handle /leaderboard command"""
        try:
            leaderboard_period = parse_period(period)
            embed, view = await self._render_leaderboard(leaderboard_period, page)
            await interaction.response.send_message(embed=embed, view=view)

            message = await interaction.original_response()
            self.button_cleanup.schedule_leaderboard_cleanup(message.id, message.channel.id)

        except ValidationError as e:
            await self.send_error_response(interaction, str(e), "❌ Invalid Period")
        except Exception as e:
            logger.error(f"Error in leaderboard command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to load the leaderboard", "❌ Leaderboard Error")

    async def handle_leaderboard_button(self, interaction: discord.Interaction):
        """Re-render a leaderboard message for the clicked period or page."""
        try:
            period, page = views.parse_leaderboard_custom_id(interaction.data.get('custom_id'))
            embed, view = await self._render_leaderboard(period, page)
            await interaction.response.edit_message(embed=embed, view=view)

            if interaction.message is not None:
                self.button_cleanup.schedule_leaderboard_cleanup(interaction.message.id, interaction.channel_id)

        except ValidationError as e:
            await self.send_error_response(interaction, str(e))
        except Exception as e:
            logger.error(f"Error handling leaderboard button: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to update the leaderboard", "❌ Leaderboard Error")

    async def handle_stats(self, interaction: discord.Interaction, user: Optional[discord.User] = None):
        """Handle /stats command"""
        try:
            target = user or interaction.user
            stats = await self.leaderboard.get_user_stats(str(target.id))
            await interaction.response.send_message(embed=views.build_user_stats_embed(target.name, stats))

        except Exception as e:
            logger.error(f"Error in stats command: {e}", exc_info=True)
            await self.send_error_response(interaction, "Failed to load statistics", "❌ Stats Error")

    # Responses

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send error embed: {e}")
            try:
                simple_message = f"{title}: {message}"
                if interaction.response.is_done():
                    await interaction.followup.send(simple_message, ephemeral=True)
                else:
                    await interaction.response.send_message(simple_message, ephemeral=True)
            except discord.HTTPException:
                logger.error("Failed to send fallback error message")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0x6699ff
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        """Send formatted warning response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xffaa00
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send warning response to user")


async def run_bot(token=None, config=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = QuizBot(config)

    try:
        logger.info("Starting Discord Trivia Bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
