"""
Embeds, button rows and custom ids used by quiz and leaderboard messages.
"""
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import discord

from .errors import ValidationError
from .models import LeaderboardPeriod, ParticipantData, Question, QuizConfig, UserStats
from .scoring import average_answer_time, medal_for

ANSWERS_PER_ROW = 4
HINTS_PER_ROW = 5
MAX_ROWS = 5
MAX_OPTIONS = ANSWERS_PER_ROW * MAX_ROWS
MAX_LABEL_LENGTH = 80
LEADERBOARD_PAGE_SIZE = 10

COLOR_INFO = 0x0099ff
COLOR_SUCCESS = 0x00ff00
COLOR_WARNING = 0xff9900
COLOR_ERROR = 0xff0000


# Custom ids

def join_custom_id(session_id: str) -> str:
    return f"quiz_join_{session_id}"


def start_custom_id(session_id: str) -> str:
    return f"quiz_start_{session_id}"


def answer_custom_id(session_id: str, question_index: int, option_index: int) -> str:
    return f"quiz_answer_{session_id}_{question_index}_{option_index}"


def hint_custom_id(session_id: str, question_index: int, hint_id: str) -> str:
    return f"quiz_hint_{session_id}_{question_index}_{hint_id}"


@dataclass
class QuizButton:
    """A decoded quiz button custom id."""
    action: str
    session_id: str
    question_index: Optional[int] = None
    option_index: Optional[int] = None
    hint_id: Optional[str] = None


def parse_quiz_custom_id(custom_id: str) -> QuizButton:
    """
    Decode a ``quiz_*`` custom id.

    Session ids are uuid4 strings and hint ids may be too, so neither
    contains an underscore.

    Raises:
        ValidationError: If the id is malformed
    """
    parts = (custom_id or "").split("_")
    if len(parts) < 3 or parts[0] != "quiz":
        raise ValidationError("Invalid button interaction.")

    action, session_id = parts[1], parts[2]
    if not session_id:
        raise ValidationError("Invalid button interaction.")

    if action in ("join", "start") and len(parts) == 3:
        return QuizButton(action=action, session_id=session_id)

    if action in ("answer", "hint") and len(parts) == 5:
        try:
            question_index = int(parts[3])
        except ValueError:
            raise ValidationError("Invalid button interaction.") from None
        if action == "answer":
            try:
                option_index = int(parts[4])
            except ValueError:
                raise ValidationError("Invalid button interaction.") from None
            return QuizButton(action=action, session_id=session_id,
                              question_index=question_index, option_index=option_index)
        if not parts[4]:
            raise ValidationError("Invalid hint button interaction.")
        return QuizButton(action=action, session_id=session_id,
                          question_index=question_index, hint_id=parts[4])

    raise ValidationError("Invalid button interaction.")


def parse_leaderboard_custom_id(custom_id: str):
    """Decode ``leaderboard_nav_<period>_<page>`` and ``leaderboard_period_<period>_<page>``."""
    parts = (custom_id or "").split("_")
    if len(parts) != 4 or parts[0] != "leaderboard" or parts[1] not in ("nav", "period"):
        raise ValidationError("Invalid leaderboard button.")
    try:
        period = LeaderboardPeriod(parts[2])
        page = int(parts[3])
    except ValueError:
        raise ValidationError("Invalid leaderboard button.") from None
    return period, max(1, page)


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def _label(text: str) -> str:
    if len(text) <= MAX_LABEL_LENGTH:
        return text
    return text[:MAX_LABEL_LENGTH - 1] + "…"


# Join phase

def build_join_embed(quiz_config: QuizConfig, question_timeout: int, wait_seconds: int,
                     participant_count: int = 0) -> discord.Embed:
    embed = discord.Embed(
        title=f"🎯 {quiz_config.title}",
        description=quiz_config.description or "Get ready to test your knowledge!",
        color=COLOR_INFO
    )
    embed.add_field(name="Questions", value=str(len(quiz_config.questions)), inline=True)
    embed.add_field(name="Time Limit", value=f"{question_timeout}s per question", inline=True)
    embed.add_field(name="Participants", value=str(participant_count), inline=True)
    embed.add_field(name="Waiting Time", value=f"{wait_seconds}s", inline=True)
    if quiz_config.time_limit:
        embed.add_field(name="Total Time Limit", value=f"{quiz_config.time_limit}s", inline=True)
    embed.set_footer(text="Click Join to participate!")
    return embed


def set_participant_count(embed: discord.Embed, count: int, field_name: str = "Participants") -> discord.Embed:
    """Rewrite the participant field of an existing embed in place."""
    for index, embed_field in enumerate(embed.fields):
        if embed_field.name == field_name:
            embed.set_field_at(index, name=field_name, value=str(count), inline=embed_field.inline)
            break
    return embed


def build_join_view(session_id: str) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Join Quiz",
        custom_id=join_custom_id(session_id),
        style=discord.ButtonStyle.primary
    ))
    view.add_item(discord.ui.Button(
        label="Start Now",
        custom_id=start_custom_id(session_id),
        style=discord.ButtonStyle.success
    ))
    return view


# Question phase

def build_question_embed(question: Question, question_index: int, total_questions: int,
                         time_limit: int, participant_count: int) -> discord.Embed:
    embed = discord.Embed(
        title=f"Question {question_index + 1} of {total_questions}",
        description=question.question_text,
        color=COLOR_INFO
    )
    embed.add_field(name="Points", value=str(question.points), inline=True)
    embed.add_field(name="Time Limit", value=f"{time_limit}s", inline=True)
    embed.add_field(name="Participants", value=str(participant_count), inline=True)
    return embed


def build_question_view(session_id: str, question_index: int, question: Question) -> discord.ui.View:
    """
    Answer buttons four per row, then hint buttons five per row.

    Hints that do not fit in the remaining rows are left out.
    """
    view = discord.ui.View(timeout=None)
    for option_index, option in enumerate(question.options):
        view.add_item(discord.ui.Button(
            label=_label(f"{option_letter(option_index)}. {option}"),
            custom_id=answer_custom_id(session_id, question_index, option_index),
            style=discord.ButtonStyle.primary,
            row=option_index // ANSWERS_PER_ROW
        ))

    first_hint_row = math.ceil(len(question.options) / ANSWERS_PER_ROW)
    for hint_position, hint in enumerate(question.hints):
        row = first_hint_row + hint_position // HINTS_PER_ROW
        if row >= MAX_ROWS:
            break
        view.add_item(discord.ui.Button(
            label=_label(f"💡 {hint.title}"),
            custom_id=hint_custom_id(session_id, question_index, hint.id),
            style=discord.ButtonStyle.secondary,
            row=row
        ))
    return view


def set_answered_count(embed: discord.Embed, answered: int, total: int) -> discord.Embed:
    for index, embed_field in enumerate(embed.fields):
        if embed_field.name == "Participants":
            embed.set_field_at(index, name="Participants", value=f"{answered} of {total} answered",
                               inline=embed_field.inline)
            break
    return embed


def build_hint_embed(title: str, text: str) -> discord.Embed:
    return discord.Embed(title=f"💡 {title}", description=text, color=COLOR_WARNING)


def build_results_embed(question: Question, options: Sequence[str], correct_count: int,
                        total_count: int) -> discord.Embed:
    correct_index = question.correct_answer
    embed = discord.Embed(
        title="⏰ Time's Up!",
        description=f"**Correct Answer:** {option_letter(correct_index)}. {options[correct_index]}",
        color=COLOR_SUCCESS
    )
    embed.add_field(name="Points Available", value=str(question.points), inline=True)
    embed.add_field(name="Correct Answers", value=str(correct_count), inline=True)
    embed.add_field(name="Total Answers", value=str(total_count), inline=True)
    return embed


# End of quiz

def format_standings(ranked: List[ParticipantData]) -> str:
    lines = []
    for position, participant in enumerate(ranked):
        average = average_answer_time(participant)
        time_text = f"avg time: {average:.2f}s" if average is not None else "no answers"
        lines.append(
            f"{medal_for(position)} **{participant.username}** - {participant.score} pts ({time_text})"
        )
    return "\n".join(lines)


def build_final_embed(ranked: List[ParticipantData], total_seconds: int) -> discord.Embed:
    embed = discord.Embed(title="🏁 Quiz Complete!", color=COLOR_SUCCESS)
    if not ranked:
        embed.description = "No participants joined the quiz."
        return embed

    all_answers = [a for p in ranked for a in p.answers.values()]
    overall_average = (
        sum(a.time_spent for a in all_answers) / len(all_answers) if all_answers else 0
    )
    embed.add_field(name="📊 Final Results", value="Here are the final standings:", inline=False)
    embed.add_field(name="⏱️ Avg Response Time", value=f"{overall_average:.2f}s", inline=True)
    embed.add_field(name="👥 Participants", value=str(len(ranked)), inline=True)
    embed.add_field(name="🕒 Duration", value=f"{total_seconds // 60}m {total_seconds % 60}s", inline=True)

    standings = format_standings(ranked)
    # embed field values are capped at 1024 characters
    if len(standings) > 1024:
        standings = standings[:1020] + "\n…"
    embed.add_field(name="🏆 Standings", value=standings, inline=False)
    return embed


# Leaderboard

def leaderboard_page_count(entry_count: int, page_size: int = LEADERBOARD_PAGE_SIZE) -> int:
    return max(1, math.ceil(entry_count / page_size))


def build_leaderboard_view(period: LeaderboardPeriod, page: int, total_pages: int) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    if total_pages > 1:
        view.add_item(discord.ui.Button(
            label="◀️ Previous",
            custom_id=f"leaderboard_nav_{period.value}_{max(1, page - 1)}",
            style=discord.ButtonStyle.secondary,
            disabled=page <= 1,
            row=0
        ))
        view.add_item(discord.ui.Button(
            label="Next ▶️",
            custom_id=f"leaderboard_nav_{period.value}_{min(total_pages, page + 1)}",
            style=discord.ButtonStyle.secondary,
            disabled=page >= total_pages,
            row=0
        ))

    period_row = 1 if total_pages > 1 else 0
    for option in LeaderboardPeriod:
        view.add_item(discord.ui.Button(
            label=option.value.capitalize(),
            custom_id=f"leaderboard_period_{option.value}_1",
            style=discord.ButtonStyle.primary if option is period else discord.ButtonStyle.secondary,
            row=period_row
        ))
    return view


def build_user_stats_embed(username: str, stats: Optional[UserStats]) -> discord.Embed:
    if stats is None:
        return discord.Embed(
            title="📊 Quiz Statistics",
            description=f"**{username}** hasn't taken any quizzes yet.",
            color=COLOR_WARNING
        )

    success_rate = round(100 * stats.correct_answers / stats.total_answers) if stats.total_answers else 0
    best_time = f"{stats.best_time // 60}m {stats.best_time % 60}s" if stats.best_time else "N/A"

    embed = discord.Embed(
        title="📊 Quiz Statistics",
        description=f"Statistics for **{username}**",
        color=COLOR_SUCCESS
    )
    embed.add_field(name="🏆 Total Score", value=str(stats.total_score), inline=True)
    embed.add_field(name="📝 Quizzes Taken", value=str(stats.total_quizzes), inline=True)
    embed.add_field(name="📊 Average Score", value=str(stats.average_score), inline=True)
    embed.add_field(name="🥇 Overall Rank", value=f"#{stats.rank}", inline=True)
    embed.add_field(name="⏱️ Best Time", value=best_time, inline=True)
    embed.add_field(name="📈 Success Rate", value=f"{success_rate}%", inline=True)
    embed.add_field(name="⚡ Avg Response Time", value=f"{stats.average_response_time}s", inline=True)
    return embed
