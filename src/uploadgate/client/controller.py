"""Upload controller: runs the session state machine against a real transport."""

import asyncio
import contextlib
import logging
import random
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from uploadgate.client.cancellation import CancelToken
from uploadgate.client.models import (
    PendingFile,
    Phase,
    UploadedFileRecord,
    UploaderOptions,
    UploadSession,
)
from uploadgate.client.state import (
    AbortRequest,
    CancelUpload,
    Effect,
    Event,
    IssueRequest,
    NotifyComplete,
    NotifyError,
    ProgressTick,
    RemoveFile,
    Reset,
    SelectFiles,
    StartUpload,
    UploadFailed,
    UploadSucceeded,
    transition,
)
from uploadgate.client.transport import (
    GENERIC_FAILURE,
    UploadCancelledError,
    UploadTransportError,
)

logger = logging.getLogger(__name__)

MAX_PROGRESS_STEP = 15.0
DEFAULT_PROGRESS_INTERVAL = 0.3  # seconds


class UploadTransport(Protocol):
    async def send(
        self, files: Sequence[PendingFile], token: CancelToken
    ) -> List[UploadedFileRecord]:
        ...


class UploadController:
    """Owns one upload session: selection, a single in-flight batch, results."""

    def __init__(
        self,
        transport: UploadTransport,
        options: Optional[UploaderOptions] = None,
        on_complete: Optional[Callable[[List[UploadedFileRecord]], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
        progress_interval: Optional[float] = DEFAULT_PROGRESS_INTERVAL,
    ):
        """Initialize the controller.

        Args:
            transport: Object sending a batch to the ingest service
            options: Uploader limits and mode
            on_complete: Called with the stored records after a successful batch
            on_error: Called with the message after a failed batch
            rng: Random source for the estimated progress increments
            progress_interval: Seconds between automatic progress ticks while
                uploading; None disables the ticker (drive ``tick`` manually)
        """
        self.transport = transport
        self.options = options or UploaderOptions()
        self.on_complete = on_complete
        self.on_error = on_error
        self.rng = rng or random.Random()
        self.progress_interval = progress_interval
        self._session = UploadSession()
        self._issued: Optional[IssueRequest] = None

    @property
    def session(self) -> UploadSession:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._session.phase

    @property
    def pending(self) -> Tuple[PendingFile, ...]:
        return self._session.pending

    @property
    def results(self) -> Tuple[UploadedFileRecord, ...]:
        return self._session.results

    @property
    def progress(self) -> float:
        return self._session.progress_percent

    @property
    def error(self) -> Optional[str]:
        return self._session.last_error

    def _dispatch(self, event: Event) -> Optional[str]:
        result = transition(self._session, event, self.options)
        self._session = result.session
        for effect in result.effects:
            self._perform(effect)
        return result.rejection

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, IssueRequest):
            self._issued = effect
        elif isinstance(effect, AbortRequest):
            effect.token.cancel()
        elif isinstance(effect, NotifyComplete):
            self._notify(self.on_complete, list(effect.records))
        elif isinstance(effect, NotifyError):
            self._notify(self.on_error, effect.message)

    @staticmethod
    def _notify(callback: Optional[Callable], payload) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception as e:
            logger.error(f"Upload callback raised: {e}", exc_info=True)

    def select_files(self, files: Iterable[PendingFile]) -> Optional[str]:
        """Add (multiple mode) or replace (single mode) the selected files.

        Returns:
            Rejection reason, or None if the selection was accepted
        """
        return self._dispatch(SelectFiles(tuple(files)))

    def remove_file(self, index: int) -> Optional[str]:
        return self._dispatch(RemoveFile(index))

    def tick(self, increment: Optional[float] = None) -> None:
        """Advance the estimated progress of the in-flight batch."""
        if increment is None:
            increment = self.rng.random() * MAX_PROGRESS_STEP
        self._dispatch(ProgressTick(increment))

    def cancel_upload(self) -> None:
        self._dispatch(CancelUpload())

    def reset(self) -> None:
        """Cancel any in-flight batch and return to an empty session."""
        self._dispatch(Reset())

    async def _run_ticker(self, token: CancelToken) -> None:
        while not token.cancelled:
            await asyncio.sleep(self.progress_interval)
            if token.cancelled:
                return
            self.tick()

    async def start_upload(self) -> None:
        """Upload every pending file as one batch.

        Does nothing when there is nothing pending or a batch is already in
        flight. Returns once the batch has completed, failed or been cancelled.
        """
        self._issued = None
        self._dispatch(StartUpload(CancelToken()))
        issued, self._issued = self._issued, None
        if issued is None:
            return

        logger.info(f"Uploading {len(issued.files)} file(s)")
        ticker = (
            asyncio.ensure_future(self._run_ticker(issued.token))
            if self.progress_interval
            else None
        )
        try:
            records = await self.transport.send(issued.files, issued.token)
        except UploadCancelledError:
            self._dispatch(CancelUpload(issued.token))
        except asyncio.CancelledError:
            self._dispatch(CancelUpload(issued.token))
            raise
        except UploadTransportError as e:
            self._dispatch(UploadFailed(issued.token, str(e)))
        except Exception as e:
            logger.error(f"Unexpected upload error: {e}", exc_info=True)
            self._dispatch(UploadFailed(issued.token, GENERIC_FAILURE))
        else:
            # Ignored by the state machine if the batch was cancelled meanwhile
            self._dispatch(UploadSucceeded(issued.token, tuple(records)))
        finally:
            if ticker is not None:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker

        logger.info(f"Upload finished: phase={self.phase.value}")
