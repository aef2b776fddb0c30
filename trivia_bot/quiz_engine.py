"""
Timer management for quiz sessions.

Each session may own a join-wait timer, one question timer and a total-quiz
timer. Timers are asyncio tasks keyed by ``TimerKey`` so a whole session can
be cancelled in one step.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .models import TimerKey, TimerKind

# Set up logger for timer operations
logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[Any]]


def _describe(key: TimerKey) -> str:
    if key.question_index is None:
        return f"{key.kind.value} timer for session {key.session_id}"
    return f"{key.kind.value} timer for session {key.session_id} (question {key.question_index})"


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(key: TimerKey, delay: float) -> None:
        logger.info(
            f"Timer lifecycle: CREATED - {_describe(key)}, Delay {delay}s",
            extra={
                'event_type': 'timer_created',
                'session_id': key.session_id,
                'timer_kind': key.kind.value,
                'question_index': key.question_index,
                'delay': delay,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(key: TimerKey, completion_type: str, lifetime: float) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - {_describe(key)}, Type {completion_type}, Lifetime {lifetime:.3f}s",
            extra={
                'event_type': 'timer_completed',
                'session_id': key.session_id,
                'timer_kind': key.kind.value,
                'question_index': key.question_index,
                'completion_type': completion_type,
                'lifetime': lifetime,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(key: TimerKey, from_state: str, to_state: str, reason: str = None) -> None:
        logger.debug(
            f"Timer lifecycle: STATE_TRANSITION - {_describe(key)}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'session_id': key.session_id,
                'timer_kind': key.kind.value,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(key: TimerKey, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - {_describe(key)}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'session_id': key.session_id,
                'timer_kind': key.kind.value,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_race_condition_detected(key: TimerKey, details: str) -> None:
        logger.warning(
            f"Timer lifecycle: RACE_CONDITION - {_describe(key)}: {details}",
            extra={
                'event_type': 'timer_race_condition',
                'session_id': key.session_id,
                'timer_kind': key.kind.value,
                'details': details,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cleanup_start(session_id: str) -> float:
        """Log start of a session's timer cleanup."""
        cleanup_start_time = time.time()
        logger.info(
            f"Timer lifecycle: CLEANUP_START - Session {session_id}",
            extra={
                'event_type': 'timer_cleanup_start',
                'session_id': session_id,
                'timestamp': cleanup_start_time
            }
        )
        return cleanup_start_time

    @staticmethod
    def log_timer_cleanup_complete(session_id: str, cleanup_start_time: float, cancelled: int) -> None:
        cleanup_duration = time.time() - cleanup_start_time
        logger.info(
            f"Timer lifecycle: CLEANUP_COMPLETE - Session {session_id}, Cancelled {cancelled}, "
            f"Duration {cleanup_duration:.3f}s",
            extra={
                'event_type': 'timer_cleanup_complete',
                'session_id': session_id,
                'cancelled': cancelled,
                'cleanup_duration': cleanup_duration,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """A single delayed callback running as an asyncio task."""

    def __init__(self, key: TimerKey, delay: float, callback: TimerCallback):
        self.key = key
        self.delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self._has_fired = False
        self._creation_time = time.time()

    def start(self, on_expire: Callable[["QuizTimer"], None]) -> asyncio.Task:
        """
        Start the countdown as a background task.

        Args:
            on_expire: Called synchronously when the delay has elapsed, before
                the callback runs
        """
        self._task = asyncio.create_task(self._run(on_expire))
        return self._task

    async def _run(self, on_expire: Callable[["QuizTimer"], None]) -> None:
        try:
            await asyncio.sleep(max(self.delay, 0))
        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_timer_completion(
                self.key, "cancelled", time.time() - self._creation_time
            )
            raise

        self._has_fired = True
        on_expire(self)
        TimerLifecycleLogger.log_timer_completion(
            self.key, "natural_expiry", time.time() - self._creation_time
        )

        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self.key,
                type(e).__name__,
                str(e),
                "timer_callback"
            )
            logger.exception(f"Unhandled error in {_describe(self.key)} callback")

    def cancel(self) -> bool:
        """Cancel the timer if it has not fired yet."""
        if self._has_fired or self._is_cancelled:
            return False

        TimerLifecycleLogger.log_timer_state_transition(
            self.key, "pending", "cancelled", "cancel requested"
        )
        self._is_cancelled = True
        if self._task and not self._task.done():
            self._task.cancel()
        return True

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def has_fired(self) -> bool:
        return self._has_fired

    @property
    def remaining_time(self) -> float:
        if self._has_fired or self._is_cancelled:
            return 0.0
        return max(0.0, self.delay - (time.time() - self._creation_time))


class TimerManager:
    """
    Tracks every pending timer by session.

    A timer leaves the table when it fires (before its callback runs) or when
    it is cancelled, so a callback may safely cancel its own session's timers.
    Arming a timer cancels any pending timer of the same kind for the session.
    """

    def __init__(self):
        self._timers: Dict[TimerKey, QuizTimer] = {}

    def _schedule(self, key: TimerKey, delay_seconds: float, on_fire: TimerCallback) -> TimerKey:
        stale = [k for k in self._timers if k.session_id == key.session_id and k.kind == key.kind]
        for stale_key in stale:
            TimerLifecycleLogger.log_race_condition_detected(
                stale_key, f"pending timer replaced by {_describe(key)}"
            )
            self.cancel(stale_key)

        timer = QuizTimer(key, delay_seconds, on_fire)
        self._timers[key] = timer
        timer.start(self._on_timer_expired)
        TimerLifecycleLogger.log_timer_created(key, delay_seconds)
        return key

    def _on_timer_expired(self, timer: QuizTimer) -> None:
        if self._timers.get(timer.key) is timer:
            del self._timers[timer.key]

    def schedule_join_timeout(self, session_id: str, delay_seconds: float, on_fire: TimerCallback) -> TimerKey:
        return self._schedule(TimerKey(session_id, TimerKind.JOIN), delay_seconds, on_fire)

    def schedule_question_timeout(
        self,
        session_id: str,
        question_index: int,
        delay_seconds: float,
        on_fire: TimerCallback
    ) -> TimerKey:
        return self._schedule(
            TimerKey(session_id, TimerKind.QUESTION, question_index), delay_seconds, on_fire
        )

    def schedule_total_timeout(self, session_id: str, delay_seconds: float, on_fire: TimerCallback) -> TimerKey:
        return self._schedule(TimerKey(session_id, TimerKind.TOTAL), delay_seconds, on_fire)

    def cancel(self, key: TimerKey) -> bool:
        """
        Cancel one timer.

        Returns:
            True if a pending timer was cancelled, False if none was pending
        """
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        return timer.cancel()

    def cancel_kind(self, session_id: str, kind: TimerKind) -> int:
        keys = [k for k in self._timers if k.session_id == session_id and k.kind == kind]
        return sum(1 for key in keys if self.cancel(key))

    def cancel_all(self, session_id: str) -> int:
        """
        Cancel every timer of every kind for a session.

        Idempotent; calling it for a session without timers is a no-op.

        Returns:
            Number of timers cancelled
        """
        keys = [k for k in self._timers if k.session_id == session_id]
        if not keys:
            return 0

        cleanup_start_time = TimerLifecycleLogger.log_timer_cleanup_start(session_id)
        cancelled = sum(1 for key in keys if self.cancel(key))
        TimerLifecycleLogger.log_timer_cleanup_complete(session_id, cleanup_start_time, cancelled)
        return cancelled

    def has_timer(self, key: TimerKey) -> bool:
        return key in self._timers

    def active_keys(self, session_id: Optional[str] = None) -> List[TimerKey]:
        return [k for k in self._timers if session_id is None or k.session_id == session_id]

    def get_timer_status(self, key: TimerKey) -> Optional[dict]:
        """
        Get the status of a pending timer.

        Returns:
            Dictionary with timer status or None if no such timer is pending
        """
        timer = self._timers.get(key)
        if timer is None:
            return None
        return {
            'remaining_time': timer.remaining_time,
            'is_cancelled': timer.is_cancelled,
            'has_fired': timer.has_fired
        }

    def shutdown(self) -> int:
        """Cancel all pending timers of all sessions."""
        session_ids = {k.session_id for k in self._timers}
        return sum(self.cancel_all(session_id) for session_id in session_ids)
