"""Upload session state machine.

``transition`` is pure: it takes the current session and an event and
returns the next session plus the side effects the caller must perform
(issue or abort the request, notify callbacks). Nothing here touches the
network or a clock, so every path can be tested synchronously.
"""

from dataclasses import dataclass, replace
from typing import NamedTuple, Optional, Sequence, Tuple, Union

from uploadgate.client.cancellation import CancelToken
from uploadgate.client.models import (
    PendingFile,
    Phase,
    UploadedFileRecord,
    UploaderOptions,
    UploadSession,
)
from uploadgate.validation import validate_file

PROGRESS_CAP = 90.0
CANCELLED_MESSAGE = "Upload cancelled"
BUSY_MESSAGE = "Upload in progress"


# Events


@dataclass(frozen=True)
class SelectFiles:
    files: Tuple[PendingFile, ...]


@dataclass(frozen=True)
class RemoveFile:
    index: int


@dataclass(frozen=True)
class StartUpload:
    token: CancelToken


@dataclass(frozen=True)
class ProgressTick:
    increment: float


@dataclass(frozen=True)
class UploadSucceeded:
    token: CancelToken
    records: Tuple[UploadedFileRecord, ...]


@dataclass(frozen=True)
class UploadFailed:
    token: CancelToken
    message: str


@dataclass(frozen=True)
class CancelUpload:
    """User cancel, or a transport abort scoped to the batch owning ``token``."""

    token: Optional[CancelToken] = None


@dataclass(frozen=True)
class Reset:
    pass


Event = Union[
    SelectFiles, RemoveFile, StartUpload, ProgressTick,
    UploadSucceeded, UploadFailed, CancelUpload, Reset,
]


# Effects


@dataclass(frozen=True)
class IssueRequest:
    files: Tuple[PendingFile, ...]
    token: CancelToken


@dataclass(frozen=True)
class AbortRequest:
    token: CancelToken


@dataclass(frozen=True)
class NotifyComplete:
    records: Tuple[UploadedFileRecord, ...]


@dataclass(frozen=True)
class NotifyError:
    message: str


Effect = Union[IssueRequest, AbortRequest, NotifyComplete, NotifyError]


class Transition(NamedTuple):
    session: UploadSession
    effects: Tuple[Effect, ...] = ()
    rejection: Optional[str] = None


def validate_selection(
    pending: Sequence[PendingFile],
    new_files: Sequence[PendingFile],
    options: UploaderOptions,
) -> Optional[str]:
    """Check a selection against count, per-file and duplicate rules.

    Returns:
        The first rejection reason, or None if the selection is acceptable
    """
    total = len(pending) + len(new_files) if options.multiple else len(new_files)
    if total > options.max_files:
        return f"Cannot upload more than {options.max_files} files"

    policy = options.policy
    require_type = not options.accepts_any_type
    for new_file in new_files:
        reason = validate_file(
            new_file.name,
            new_file.size_bytes,
            new_file.mime_type,
            policy,
            reject_empty=True,
            require_type=require_type,
        )
        if reason:
            return reason

    seen = {f.name for f in pending} if options.multiple else set()
    duplicates = []
    for new_file in new_files:
        if new_file.name in seen and new_file.name not in duplicates:
            duplicates.append(new_file.name)
        seen.add(new_file.name)
    if duplicates:
        return f"Duplicate files detected: {', '.join(duplicates)}"

    return None


def _phase_for(pending: Sequence[PendingFile]) -> Phase:
    return Phase.FILES_SELECTED if pending else Phase.IDLE


def _select(session: UploadSession, event: SelectFiles, options: UploaderOptions) -> Transition:
    if not event.files:
        return Transition(session)

    reason = validate_selection(session.pending, event.files, options)
    if reason:
        return Transition(session, rejection=reason)

    pending = session.pending + event.files if options.multiple else tuple(event.files)
    return Transition(
        replace(session, pending=pending, phase=Phase.FILES_SELECTED, last_error=None)
    )


def _remove(session: UploadSession, event: RemoveFile) -> Transition:
    if not 0 <= event.index < len(session.pending):
        return Transition(session, rejection=f"No selected file at index {event.index}")

    pending = session.pending[: event.index] + session.pending[event.index + 1 :]
    return Transition(
        replace(session, pending=pending, phase=_phase_for(pending), last_error=None)
    )


def _start(session: UploadSession, event: StartUpload) -> Transition:
    if not session.pending:
        return Transition(session)

    uploading = replace(
        session,
        phase=Phase.UPLOADING,
        progress_percent=0.0,
        last_error=None,
        cancel_token=event.token,
    )
    return Transition(uploading, (IssueRequest(session.pending, event.token),))


def _tick(session: UploadSession, event: ProgressTick) -> Transition:
    if session.progress_percent >= PROGRESS_CAP or event.increment <= 0:
        return Transition(session)
    progress = min(session.progress_percent + event.increment, PROGRESS_CAP)
    return Transition(replace(session, progress_percent=progress))


def _is_current(session: UploadSession, token: CancelToken) -> bool:
    return session.is_uploading and session.cancel_token is token


def _succeeded(session: UploadSession, event: UploadSucceeded) -> Transition:
    if not _is_current(session, event.token):
        return Transition(session)

    completed = replace(
        session,
        pending=(),
        phase=Phase.COMPLETED,
        progress_percent=100.0,
        results=tuple(event.records),
        last_error=None,
        cancel_token=None,
    )
    return Transition(completed, (NotifyComplete(tuple(event.records)),))


def _failed(session: UploadSession, event: UploadFailed) -> Transition:
    if not _is_current(session, event.token):
        return Transition(session)

    failed = replace(
        session,
        phase=Phase.FAILED,
        progress_percent=100.0,
        last_error=event.message,
        cancel_token=None,
    )
    return Transition(failed, (NotifyError(event.message),))


def _cancel(session: UploadSession, event: CancelUpload) -> Transition:
    if not session.is_uploading:
        return Transition(session)
    if event.token is not None and not _is_current(session, event.token):
        return Transition(session)

    cancelled = replace(
        session,
        phase=Phase.CANCELLED,
        progress_percent=0.0,
        last_error=CANCELLED_MESSAGE,
        cancel_token=None,
    )
    effects = (AbortRequest(session.cancel_token),) if session.cancel_token else ()
    return Transition(cancelled, effects)


def _reset(session: UploadSession) -> Transition:
    effects: Tuple[Effect, ...] = ()
    if session.is_uploading and session.cancel_token:
        effects = (AbortRequest(session.cancel_token),)
    return Transition(UploadSession(), effects)


def transition(session: UploadSession, event: Event, options: UploaderOptions) -> Transition:
    """Apply one event to a session.

    While a batch is in flight only progress ticks, results, cancel and
    reset are accepted; other user actions are rejected without changing
    the session, and a second start is a no-op.
    """
    if isinstance(event, ProgressTick):
        return _tick(session, event) if session.is_uploading else Transition(session)
    if isinstance(event, UploadSucceeded):
        return _succeeded(session, event)
    if isinstance(event, UploadFailed):
        return _failed(session, event)
    if isinstance(event, CancelUpload):
        return _cancel(session, event)
    if isinstance(event, Reset):
        return _reset(session)

    if session.is_uploading:
        if isinstance(event, StartUpload):
            return Transition(session)
        return Transition(session, rejection=BUSY_MESSAGE)

    if isinstance(event, SelectFiles):
        return _select(session, event, options)
    if isinstance(event, RemoveFile):
        return _remove(session, event)
    if isinstance(event, StartUpload):
        return _start(session, event)

    raise TypeError(f"Unknown upload event: {event!r}")
