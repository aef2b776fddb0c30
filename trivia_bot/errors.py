"""
Exception hierarchy for the Discord Trivia Bot.
"""


class TriviaBotError(Exception):
    """Base exception for trivia bot errors."""
    pass


class ValidationError(TriviaBotError):
    """Raised for malformed or stale interaction payloads and invalid input."""
    pass


class NotFoundError(TriviaBotError):
    """Raised when a session, quiz, question or hint does not exist."""
    pass


class SessionNotFoundError(NotFoundError):
    """Raised when attempting to operate on a non-existent session."""
    pass


class QuizPermissionError(TriviaBotError):
    """Raised when a private quiz cannot be started for the requested owner."""
    pass


class PersistenceError(TriviaBotError):
    """Raised when the repository fails to read or write records."""
    pass


def get_user_friendly_error_message(error: Exception, operation: str) -> str:
    """
    Generate user-friendly error messages.

    Args:
        error: The exception that occurred
        operation: Description of the operation that failed

    Returns:
        User-friendly error message
    """
    if isinstance(error, SessionNotFoundError):
        return "❌ No active quiz found. Start a quiz with `/quiz start`."

    elif isinstance(error, NotFoundError):
        return f"❌ {error}"

    elif isinstance(error, QuizPermissionError):
        return f"❌ {error}"

    elif isinstance(error, ValidationError):
        return f"❌ {error}"

    elif isinstance(error, PersistenceError):
        return "❌ Could not reach the quiz database. Please try again in a moment."

    elif "permission" in str(error).lower() or "forbidden" in str(error).lower():
        return "❌ Permission error. Please check bot permissions in this channel."

    else:
        return f"❌ An unexpected error occurred during {operation}. Please try again."
