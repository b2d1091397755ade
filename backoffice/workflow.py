"""Per-page modal lifecycle.

``IDLE -> FORM_OPEN -> CONFIRM_OPEN -> SUBMITTING -> IDLE``, with
``HISTORY_OPEN`` and ``DELETE_CONFIRM_OPEN`` reachable from ``IDLE``. The
presence of ``current_account`` selects the update path at submission.

A rejected submission closes the modals and leaves local state untouched,
but the draft is kept so :meth:`FormWorkflow.restore_draft` can reopen the
form with what the operator typed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from .errors import ApiError, BackofficeError, ValidationError
from .logging_setup import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class State(str, Enum):
    IDLE = "idle"
    FORM_OPEN = "form_open"
    CONFIRM_OPEN = "confirm_open"
    SUBMITTING = "submitting"
    HISTORY_OPEN = "history_open"
    DELETE_CONFIRM_OPEN = "delete_confirm_open"


class TransitionError(BackofficeError):
    """An action was requested from a state that does not allow it."""


@dataclass
class Outcome:
    ok: bool
    mode: str
    result: Any = None
    error: ApiError | None = None


@dataclass
class _Rejected:
    subject: Any
    current_account: str | None
    intent: str
    draft: dict[str, Any] = field(default_factory=dict)
    validate: Callable[[Mapping[str, Any]], Any] | None = None


class FormWorkflow(Generic[T]):
    """Drives the create/update/delete dialogs of one dashboard page."""

    def __init__(self, validate: Callable[[Mapping[str, Any]], T], empty_form: Mapping[str, Any]) -> None:
        self._default_validate = validate
        self._validate = validate
        self.empty_form = dict(empty_form)
        self.state = State.IDLE
        self.subject: Any = None
        self.current_account: str | None = None
        self.intent = "create"
        self.draft: dict[str, Any] = dict(empty_form)
        self.validated: T | None = None
        self.error: str | None = None
        self.delete_target: str | None = None
        self.delete_all = False
        self._return_state = State.IDLE
        self._rejected: _Rejected | None = None

    def _require(self, *allowed: State) -> None:
        if self.state not in allowed:
            names = ", ".join(state.name for state in allowed)
            raise TransitionError(f"cannot do this from {self.state.name}; expected {names}")

    # -- form ---------------------------------------------------------------

    def open_create(
        self,
        subject: Any,
        *,
        draft: Mapping[str, Any] | None = None,
        validate: Callable[[Mapping[str, Any]], T] | None = None,
        intent: str = "create",
    ) -> None:
        self._require(State.IDLE, State.HISTORY_OPEN)
        self._open(subject, None, draft or self.empty_form, validate, intent)

    def open_update(self, subject: Any, account_number: str, values: Mapping[str, Any]) -> None:
        self._require(State.IDLE, State.HISTORY_OPEN)
        draft = {name: "" if values.get(name) is None else str(values.get(name)) for name in self.empty_form}
        self._open(subject, account_number, draft, None, "update")

    def _open(
        self,
        subject: Any,
        account_number: str | None,
        draft: Mapping[str, Any],
        validate: Callable[[Mapping[str, Any]], T] | None,
        intent: str,
    ) -> None:
        self.subject = subject
        self.current_account = account_number
        self.intent = intent
        self.draft = dict(draft)
        self._validate = validate or self._default_validate
        self.validated = None
        self.error = None
        self.state = State.FORM_OPEN

    @property
    def is_update(self) -> bool:
        return self.current_account is not None

    def submit(self, values: Mapping[str, Any] | None = None) -> bool:
        """Validate the draft; on success move to the confirmation step."""

        self._require(State.FORM_OPEN)
        if values is not None:
            self.draft.update(values)
        try:
            self.validated = self._validate(self.draft)
        except ValidationError as exc:
            self.error = exc.message
            return False
        self.error = None
        self.state = State.CONFIRM_OPEN
        return True

    def back_to_form(self) -> None:
        self._require(State.CONFIRM_OPEN)
        self.state = State.FORM_OPEN

    def cancel(self) -> None:
        """Close whichever dialog is open and discard the draft."""

        self._reset()

    def confirm(
        self,
        create: Callable[[T], Any],
        update: Callable[[str, T], Any] | None = None,
    ) -> Outcome:
        """Send the validated form and return to ``IDLE`` either way.

        An ``ApiError`` or any unexpected failure of the handler is reported
        in the returned :class:`Outcome`; the draft is kept for
        :meth:`restore_draft`.
        """

        self._require(State.CONFIRM_OPEN)
        if self.validated is None:
            raise TransitionError("nothing validated to confirm")
        if self.is_update and update is None:
            raise TransitionError("no update handler for an update submission")
        mode = "update" if self.is_update else self.intent
        self.state = State.SUBMITTING
        try:
            if self.is_update:
                result = update(self.current_account, self.validated)
            else:
                result = create(self.validated)
        except ApiError as exc:
            logger.warning("%s failed for %r: %s", mode, self.current_account or self.subject, exc)
            return self._reject(mode, exc)
        except Exception as exc:
            logger.exception("%s raised unexpectedly for %r", mode, self.current_account or self.subject)
            return self._reject(mode, ApiError(f"Unexpected error: {exc}"))

        self._rejected = None
        self._reset()
        return Outcome(ok=True, mode=mode, result=result)

    def _reject(self, mode: str, exc: ApiError) -> Outcome:
        self._rejected = _Rejected(
            subject=self.subject,
            current_account=self.current_account,
            intent=self.intent,
            draft=dict(self.draft),
            validate=self._validate,
        )
        self._reset()
        self.error = exc.message
        return Outcome(ok=False, mode=mode, error=exc)

    @property
    def can_restore(self) -> bool:
        return self._rejected is not None

    def restore_draft(self) -> None:
        """Reopen the form with the draft of the last rejected submission."""

        self._require(State.IDLE)
        if self._rejected is None:
            raise TransitionError("no rejected draft to restore")
        rejected, self._rejected = self._rejected, None
        self._open(rejected.subject, rejected.current_account, rejected.draft, rejected.validate, rejected.intent)

    # -- history --------------------------------------------------------------

    def open_history(self, subject: Any) -> None:
        self._require(State.IDLE)
        self.subject = subject
        self.error = None
        self.state = State.HISTORY_OPEN

    def close_history(self) -> None:
        self._require(State.HISTORY_OPEN)
        self._reset()

    # -- delete ----------------------------------------------------------------

    def request_delete(self, account_number: str, subject: Any = None) -> None:
        self._require(State.IDLE, State.HISTORY_OPEN)
        self._return_state = self.state
        if subject is not None:
            self.subject = subject
        self.delete_target = account_number
        self.delete_all = False
        self.state = State.DELETE_CONFIRM_OPEN

    def request_delete_all(self, subject: Any = None) -> None:
        self._require(State.IDLE, State.HISTORY_OPEN)
        self._return_state = self.state
        if subject is not None:
            self.subject = subject
        self.delete_target = None
        self.delete_all = True
        self.state = State.DELETE_CONFIRM_OPEN

    def cancel_delete(self) -> None:
        self._require(State.DELETE_CONFIRM_OPEN)
        self.delete_target = None
        self.delete_all = False
        self.state = self._return_state

    def confirm_delete(
        self,
        delete_one: Callable[[str], Any],
        delete_all: Callable[[], Any],
    ) -> Outcome:
        """Issue the delete and return to where the request came from."""

        self._require(State.DELETE_CONFIRM_OPEN)
        mode = "delete_all" if self.delete_all else "delete"
        try:
            result = delete_all() if self.delete_all else delete_one(self.delete_target or "")
        except ApiError as exc:
            logger.warning("%s failed for %r: %s", mode, self.delete_target or self.subject, exc)
            self.cancel_delete()
            self.error = exc.message
            return Outcome(ok=False, mode=mode, error=exc)
        except Exception as exc:
            logger.exception("%s raised unexpectedly for %r", mode, self.delete_target or self.subject)
            error = ApiError(f"Unexpected error: {exc}")
            self.cancel_delete()
            self.error = error.message
            return Outcome(ok=False, mode=mode, error=error)

        self.delete_target = None
        if self.delete_all:
            self.delete_all = False
            self._reset()
        else:
            self.state = self._return_state
        return Outcome(ok=True, mode=mode, result=result)

    def _reset(self) -> None:
        self.state = State.IDLE
        self.subject = None
        self.current_account = None
        self.intent = "create"
        self.draft = dict(self.empty_form)
        self._validate = self._default_validate
        self.validated = None
        self.error = None
        self.delete_target = None
        self.delete_all = False
        self._return_state = State.IDLE
