"""Study session lifecycle: selection, reveal, judgment, completion and summary.

The lifecycle is an explicit finite-state machine. ``transition`` is a pure
function of the current ``SessionState`` and a command; it returns the next
state together with the side effects the caller has to carry out. The
``StudySession`` driver owns one state value, runs the effects and talks to a
``StudyBackend``.

Review submissions are fire-and-forget: ``StudySession.answer`` advances the
local state immediately and schedules the storage call as an asyncio task.
Failed submissions are logged and dropped, except ``UnauthorizedError`` which
ends the flow and is escalated to the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Set, Tuple, Union

from src.study.errors import ERROR_MESSAGES, InvalidInputError, StudyServiceError, UnauthorizedError
from src.study.selector import StudyCard, StudySessionData, StudySessionStatistics
from src.study.summary import AnswerRecord, SessionSummary, calculate_summary


LOGGER = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    STUDYING = "studying"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


# A new queue may only be fetched before studying has begun.
LOADABLE_STATUSES = frozenset(
    {SessionStatus.IDLE, SessionStatus.LOADING, SessionStatus.READY, SessionStatus.EMPTY}
)
TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.INTERRUPTED})


@dataclass(frozen=True, slots=True)
class SessionProgress:
    current_index: int = 0
    total_cards: int = 0
    answered_count: int = 0
    remembered_count: int = 0
    forgotten_count: int = 0


@dataclass(frozen=True, slots=True)
class SessionState:
    """Complete, immutable snapshot of one study session."""

    status: SessionStatus = SessionStatus.IDLE
    cards: Tuple[StudyCard, ...] = ()
    statistics: Optional[StudySessionStatistics] = None
    has_any_flashcards: bool = False
    is_revealed: bool = False
    answers: Tuple[AnswerRecord, ...] = ()
    summary: Optional[SessionSummary] = None
    error: Optional[str] = None

    @property
    def current_index(self) -> int:
        return len(self.answers)

    @property
    def current_card(self) -> Optional[StudyCard]:
        if self.status is SessionStatus.STUDYING and self.current_index < len(self.cards):
            return self.cards[self.current_index]
        return None

    @property
    def progress(self) -> SessionProgress:
        remembered = sum(1 for record in self.answers if record.remembered)
        answered = len(self.answers)
        return SessionProgress(
            current_index=answered,
            total_cards=len(self.cards),
            answered_count=answered,
            remembered_count=remembered,
            forgotten_count=answered - remembered,
        )


# Commands


@dataclass(frozen=True, slots=True)
class LoadStarted:
    pass


@dataclass(frozen=True, slots=True)
class LoadSucceeded:
    data: StudySessionData


@dataclass(frozen=True, slots=True)
class LoadFailed:
    message: str = ERROR_MESSAGES["server_error"]


@dataclass(frozen=True, slots=True)
class Start:
    pass


@dataclass(frozen=True, slots=True)
class Reveal:
    pass


@dataclass(frozen=True, slots=True)
class Answer:
    """Judge the current card.

    ``flashcard_id`` names the card the learner was looking at; a judgment for
    any other card (for example a repeated button press) is rejected.
    """

    remembered: bool
    answered_at: datetime
    flashcard_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Interrupt:
    pass


@dataclass(frozen=True, slots=True)
class Finish:
    pass


@dataclass(frozen=True, slots=True)
class AuthorizationLost:
    message: str = ERROR_MESSAGES["unauthorized"]


Command = Union[
    LoadStarted,
    LoadSucceeded,
    LoadFailed,
    Start,
    Reveal,
    Answer,
    Interrupt,
    Finish,
    AuthorizationLost,
]


# Effects


@dataclass(frozen=True, slots=True)
class SubmitReview:
    flashcard_id: str
    remembered: bool


@dataclass(frozen=True, slots=True)
class DisposeSession:
    pass


Effect = Union[SubmitReview, DisposeSession]


@dataclass(frozen=True, slots=True)
class Transition:
    state: SessionState
    effects: Tuple[Effect, ...] = ()
    accepted: bool = True


def _rejected(state: SessionState) -> Transition:
    return Transition(state=state, accepted=False)


def _on_load_started(state: SessionState, command: LoadStarted) -> Transition:
    if state.status not in LOADABLE_STATUSES:
        return _rejected(state)
    return Transition(SessionState(status=SessionStatus.LOADING))


def _on_load_succeeded(state: SessionState, command: LoadSucceeded) -> Transition:
    if state.status not in LOADABLE_STATUSES:
        return _rejected(state)
    data = command.data
    status = SessionStatus.READY if data.cards else SessionStatus.EMPTY
    return Transition(
        SessionState(
            status=status,
            cards=tuple(data.cards),
            statistics=data.statistics,
            has_any_flashcards=data.has_any_flashcards,
        )
    )


def _on_load_failed(state: SessionState, command: LoadFailed) -> Transition:
    if state.status not in LOADABLE_STATUSES:
        return _rejected(state)
    return Transition(SessionState(status=SessionStatus.IDLE, error=command.message))


def _on_start(state: SessionState, command: Start) -> Transition:
    if state.status is not SessionStatus.READY or not state.cards:
        return _rejected(state)
    return Transition(
        replace(
            state,
            status=SessionStatus.STUDYING,
            is_revealed=False,
            answers=(),
            summary=None,
        )
    )


def _on_reveal(state: SessionState, command: Reveal) -> Transition:
    if state.current_card is None or state.is_revealed:
        return _rejected(state)
    return Transition(replace(state, is_revealed=True))


def _on_answer(state: SessionState, command: Answer) -> Transition:
    card = state.current_card
    if card is None:
        return _rejected(state)
    if command.flashcard_id is not None and command.flashcard_id != card.id:
        return _rejected(state)

    record = AnswerRecord(
        flashcard_id=card.id,
        is_new=card.is_new,
        remembered=command.remembered,
        answered_at=command.answered_at,
    )
    answers = state.answers + (record,)
    effects: Tuple[Effect, ...] = (SubmitReview(flashcard_id=card.id, remembered=command.remembered),)

    if len(answers) >= len(state.cards):
        return Transition(
            replace(
                state,
                status=SessionStatus.COMPLETED,
                answers=answers,
                is_revealed=False,
                summary=calculate_summary(answers),
            ),
            effects,
        )
    return Transition(replace(state, answers=answers, is_revealed=False), effects)


def _on_interrupt(state: SessionState, command: Interrupt) -> Transition:
    if state.status is not SessionStatus.STUDYING:
        return _rejected(state)
    return Transition(
        replace(
            state,
            status=SessionStatus.INTERRUPTED,
            is_revealed=False,
            summary=calculate_summary(state.answers),
        )
    )


def _on_finish(state: SessionState, command: Finish) -> Transition:
    return Transition(state, (DisposeSession(),))


def _on_authorization_lost(state: SessionState, command: AuthorizationLost) -> Transition:
    return Transition(SessionState(status=SessionStatus.IDLE, error=command.message))


_HANDLERS = {
    LoadStarted: _on_load_started,
    LoadSucceeded: _on_load_succeeded,
    LoadFailed: _on_load_failed,
    Start: _on_start,
    Reveal: _on_reveal,
    Answer: _on_answer,
    Interrupt: _on_interrupt,
    Finish: _on_finish,
    AuthorizationLost: _on_authorization_lost,
}


def transition(state: SessionState, command: Command) -> Transition:
    """Apply ``command`` to ``state``; commands not allowed in the current state are no-ops."""
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported session command: {command!r}")
    return handler(state, command)


class StudyBackend(Protocol):
    """Storage boundary of a session, already bound to the authenticated user."""

    async def fetch_session(self) -> StudySessionData:
        ...

    async def submit_review(self, flashcard_id: str, remembered: bool) -> object:
        ...


UnauthorizedCallback = Callable[[UnauthorizedError], Optional[Awaitable[None]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _PendingReviews:
    tasks: Set["asyncio.Task[None]"] = field(default_factory=set)

    def track(self, task: "asyncio.Task[None]") -> None:
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    def __bool__(self) -> bool:
        return bool(self.tasks)


class StudySession:
    """Runs one study session on top of the pure state machine.

    Commands are synchronous and must be issued from a running event loop,
    because accepted answers schedule their storage call as a task.
    """

    def __init__(
        self,
        backend: StudyBackend,
        on_unauthorized: Optional[UnauthorizedCallback] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._on_unauthorized = on_unauthorized
        self._clock = clock
        self._state = SessionState()
        self._pending = _PendingReviews()
        self._unauthorized: Optional[UnauthorizedError] = None
        self._disposed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def current_card(self) -> Optional[StudyCard]:
        return self._state.current_card

    @property
    def progress(self) -> SessionProgress:
        return self._state.progress

    @property
    def is_revealed(self) -> bool:
        return self._state.is_revealed

    @property
    def summary(self) -> Optional[SessionSummary]:
        return self._state.summary

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def is_submitting(self) -> bool:
        """True while at least one review submission has not resolved yet."""
        return bool(self._pending)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _dispatch(self, command: Command) -> bool:
        if self._disposed:
            return False
        result = transition(self._state, command)
        self._state = result.state
        for effect in result.effects:
            self._run_effect(effect)
        return result.accepted

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, SubmitReview):
            self._pending.track(asyncio.create_task(self._submit(effect)))
        elif isinstance(effect, DisposeSession):
            self._disposed = True

    async def load(self) -> SessionState:
        """Fetch today's queue; the outcome is ``ready``, ``empty`` or ``idle`` with an error."""
        if not self._dispatch(LoadStarted()):
            return self._state

        try:
            data = await self._backend.fetch_session()
        except UnauthorizedError as exc:
            self._unauthorized = exc
            self._dispatch(AuthorizationLost(exc.message))
            raise
        except StudyServiceError as exc:
            LOGGER.warning("Study session could not be loaded: %s", exc.message)
            self._dispatch(LoadFailed(exc.message))
            return self._state
        except Exception:
            LOGGER.exception("Unexpected failure while loading a study session.")
            self._dispatch(LoadFailed(ERROR_MESSAGES["network_error"]))
            return self._state

        self._dispatch(LoadSucceeded(data))
        return self._state

    def start(self) -> bool:
        return self._dispatch(Start())

    def reveal(self) -> bool:
        return self._dispatch(Reveal())

    def answer(self, remembered: bool, flashcard_id: Optional[str] = None) -> bool:
        """Record a judgment for the current card and submit it in the background."""
        if not isinstance(remembered, bool):
            raise InvalidInputError("remembered must be a boolean.")
        return self._dispatch(
            Answer(remembered=remembered, answered_at=self._clock(), flashcard_id=flashcard_id)
        )

    def interrupt(self) -> bool:
        return self._dispatch(Interrupt())

    def finish(self) -> bool:
        """Dispose of the session; outstanding submissions are left to complete."""
        return self._dispatch(Finish())

    async def wait_for_pending_reviews(self) -> None:
        """Wait for in-flight submissions and re-raise a lost authorization, if any."""
        while self._pending:
            await asyncio.gather(*tuple(self._pending.tasks))
        if self._unauthorized is not None:
            raise self._unauthorized

    async def _submit(self, effect: SubmitReview) -> None:
        try:
            await self._backend.submit_review(effect.flashcard_id, effect.remembered)
        except UnauthorizedError as exc:
            await self._escalate_unauthorized(exc)
        except Exception:
            LOGGER.warning(
                "Discarding failed review submission for flashcard %s.",
                effect.flashcard_id,
                exc_info=True,
            )

    async def _escalate_unauthorized(self, exc: UnauthorizedError) -> None:
        self._unauthorized = exc
        # Disposal does not stop the flow from ending for an expired identity.
        self._state = transition(self._state, AuthorizationLost(exc.message)).state
        if self._on_unauthorized is None:
            return
        try:
            outcome = self._on_unauthorized(exc)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            LOGGER.exception("Unauthorized handler failed.")
