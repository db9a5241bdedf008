"""Tests for the upload session state machine."""

from dataclasses import replace

import pytest

from uploadgate.client.cancellation import CancelToken
from uploadgate.client.models import PendingFile, Phase, UploaderOptions, UploadSession
from uploadgate.client.state import (
    AbortRequest,
    CancelUpload,
    IssueRequest,
    NotifyComplete,
    NotifyError,
    PROGRESS_CAP,
    ProgressTick,
    RemoveFile,
    Reset,
    SelectFiles,
    StartUpload,
    UploadFailed,
    UploadSucceeded,
    transition,
    validate_selection,
)
from uploadgate.models.upload import UploadedFileRecord

MB = 1024 * 1024

MULTI = UploaderOptions(multiple=True, accept="image/*", max_size_mb=20, max_files=3)
SINGLE = UploaderOptions(multiple=False, accept="image/*", max_size_mb=20, max_files=3)


def png(name: str, size: int = 100) -> PendingFile:
    return PendingFile(name=name, size_bytes=size, mime_type="image/png", content=b"x" * min(size, 8))


def record(name: str) -> UploadedFileRecord:
    return UploadedFileRecord(
        original_name=name,
        storage_key=f"uploads/{name}",
        public_url=f"https://cdn.example.com/uploads/{name}",
        size_bytes=100,
        mime_type="image/png",
    )


def selected(*names: str) -> UploadSession:
    return UploadSession(pending=tuple(png(n) for n in names), phase=Phase.FILES_SELECTED)


def uploading(*names: str):
    token = CancelToken()
    result = transition(selected(*names), StartUpload(token), MULTI)
    return result.session, token


class TestSelectFiles:
    def test_select_from_idle(self):
        result = transition(UploadSession(), SelectFiles((png("a.png"),)), MULTI)

        assert result.rejection is None
        assert result.session.phase == Phase.FILES_SELECTED
        assert result.session.pending_names == ("a.png",)

    def test_multiple_mode_appends(self):
        result = transition(selected("a.png"), SelectFiles((png("b.png"),)), MULTI)

        assert result.session.pending_names == ("a.png", "b.png")

    def test_single_mode_replaces(self):
        result = transition(selected("a.png"), SelectFiles((png("b.png"),)), SINGLE)

        assert result.session.pending_names == ("b.png",)

    def test_single_mode_same_file_twice_replaces(self):
        session = transition(UploadSession(), SelectFiles((png("a.png"),)), SINGLE).session
        result = transition(session, SelectFiles((png("a.png"),)), SINGLE)

        assert result.rejection is None
        assert result.session.pending_names == ("a.png",)

    def test_count_over_limit_rejected_without_change(self):
        session = selected("a.png", "b.png")

        result = transition(session, SelectFiles((png("c.png"), png("d.png"))), MULTI)

        assert result.rejection == "Cannot upload more than 3 files"
        assert result.session is session

    def test_single_mode_counts_only_new_files(self):
        session = selected("a.png", "b.png")

        result = transition(session, SelectFiles((png("c.png"), png("d.png"))), SINGLE)

        assert result.rejection is None
        assert result.session.pending_names == ("c.png", "d.png")

    def test_duplicate_against_pending_rejected(self):
        session = selected("a.png")

        result = transition(session, SelectFiles((png("a.png"),)), MULTI)

        assert result.rejection == "Duplicate files detected: a.png"
        assert result.session is session

    def test_duplicate_within_batch_rejected(self):
        result = transition(UploadSession(), SelectFiles((png("a.png"), png("a.png"))), SINGLE)

        assert result.rejection == "Duplicate files detected: a.png"

    def test_duplicate_names_are_case_sensitive(self):
        result = transition(selected("a.png"), SelectFiles((png("A.png"),)), MULTI)

        assert result.rejection is None

    def test_invalid_file_rejects_whole_selection(self):
        big = png("big.png", size=21 * MB)

        result = transition(selected("a.png"), SelectFiles((png("b.png"), big)), MULTI)

        assert result.rejection == 'File "big.png" exceeds maximum size of 20MB'
        assert result.session.pending_names == ("a.png",)

    def test_empty_file_rejected(self):
        empty = PendingFile(name="e.png", size_bytes=0, mime_type="image/png", content=b"")

        result = transition(UploadSession(), SelectFiles((empty,)), MULTI)

        assert result.rejection == 'File "e.png" is empty'

    def test_missing_type_rejected_unless_accept_is_wildcard(self):
        untyped = PendingFile(name="notes", size_bytes=10, mime_type="", content=b"0123456789")

        rejected = transition(UploadSession(), SelectFiles((untyped,)), MULTI)
        accepted = transition(
            UploadSession(), SelectFiles((untyped,)), UploaderOptions(multiple=True, accept="*/*")
        )

        assert rejected.rejection == 'File "notes" has no type information'
        assert accepted.rejection is None

    def test_type_outside_accept_rejected(self):
        pdf = PendingFile(name="doc.pdf", size_bytes=10, mime_type="application/pdf", content=b"%PDF")

        result = transition(UploadSession(), SelectFiles((pdf,)), MULTI)

        assert result.rejection == 'File "doc.pdf" type application/pdf is not allowed'

    def test_empty_selection_is_noop(self):
        session = selected("a.png")

        result = transition(session, SelectFiles(()), MULTI)

        assert result.session is session
        assert result.rejection is None

    def test_selection_after_completion_returns_to_files_selected(self):
        session, token = uploading("a.png")
        done = transition(session, UploadSucceeded(token, (record("a.png"),)), MULTI).session

        result = transition(done, SelectFiles((png("b.png"),)), MULTI)

        assert result.session.phase == Phase.FILES_SELECTED
        assert result.session.results == (record("a.png"),)


class TestRemoveFile:
    def test_remove_clears_error(self):
        session = UploadSession(
            pending=(png("a.png"), png("b.png")), phase=Phase.FAILED, last_error="Upload failed"
        )

        result = transition(session, RemoveFile(0), MULTI)

        assert result.session.pending_names == ("b.png",)
        assert result.session.last_error is None
        assert result.session.phase == Phase.FILES_SELECTED

    def test_remove_last_goes_idle(self):
        result = transition(selected("a.png"), RemoveFile(0), MULTI)

        assert result.session.phase == Phase.IDLE
        assert result.session.pending == ()

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_invalid_index_rejected(self, index):
        session = selected("a.png")

        result = transition(session, RemoveFile(index), MULTI)

        assert result.rejection is not None
        assert result.session is session


class TestUploadLifecycle:
    def test_start_issues_request(self):
        token = CancelToken()

        result = transition(selected("a.png", "b.png"), StartUpload(token), MULTI)

        assert result.session.phase == Phase.UPLOADING
        assert result.session.progress_percent == 0.0
        assert result.session.cancel_token is token
        assert result.effects == (IssueRequest(result.session.pending, token),)

    def test_start_with_nothing_pending_is_noop(self):
        session = UploadSession()

        result = transition(session, StartUpload(CancelToken()), MULTI)

        assert result.session is session
        assert result.effects == ()

    def test_start_while_uploading_is_noop(self):
        session, _ = uploading("a.png")

        result = transition(session, StartUpload(CancelToken()), MULTI)

        assert result.session is session
        assert result.effects == ()

    def test_user_actions_rejected_while_uploading(self):
        session, _ = uploading("a.png")

        for event in (SelectFiles((png("b.png"),)), RemoveFile(0)):
            result = transition(session, event, MULTI)
            assert result.rejection == "Upload in progress"
            assert result.session is session

    def test_progress_ticks_never_reach_100(self):
        session, _ = uploading("a.png")

        for _ in range(50):
            session = transition(session, ProgressTick(14.9), MULTI).session
            assert session.progress_percent < 100

        assert session.progress_percent == PROGRESS_CAP

    def test_progress_ignored_when_not_uploading(self):
        session = selected("a.png")

        assert transition(session, ProgressTick(10), MULTI).session is session

    def test_success_completes_batch(self):
        session, token = uploading("a.png", "b.png")
        records = (record("a.png"), record("b.png"))

        result = transition(session, UploadSucceeded(token, records), MULTI)

        assert result.session.phase == Phase.COMPLETED
        assert result.session.pending == ()
        assert result.session.results == records
        assert result.session.progress_percent == 100.0
        assert result.effects == (NotifyComplete(records),)

    def test_failure_keeps_pending_and_results(self):
        session, token = uploading("a.png")
        session = replace(session, results=(record("old.png"),))

        result = transition(session, UploadFailed(token, "Too many files"), MULTI)

        assert result.session.phase == Phase.FAILED
        assert result.session.last_error == "Too many files"
        assert result.session.pending_names == ("a.png",)
        assert result.session.results == (record("old.png"),)
        assert result.session.progress_percent == 100.0
        assert result.effects == (NotifyError("Too many files"),)

    def test_cancel_keeps_pending(self):
        session, token = uploading("a.png", "b.png")

        result = transition(session, CancelUpload(), MULTI)

        assert result.session.phase == Phase.CANCELLED
        assert result.session.last_error == "Upload cancelled"
        assert result.session.pending_names == ("a.png", "b.png")
        assert result.effects == (AbortRequest(token),)

    def test_cancel_when_idle_is_noop(self):
        session = selected("a.png")

        result = transition(session, CancelUpload(), MULTI)

        assert result.session is session
        assert result.effects == ()

    def test_late_result_after_cancel_is_ignored(self):
        session, token = uploading("a.png")
        cancelled = transition(session, CancelUpload(), MULTI).session

        result = transition(cancelled, UploadSucceeded(token, (record("a.png"),)), MULTI)

        assert result.session is cancelled
        assert result.effects == ()

    def test_retry_after_failure(self):
        session, token = uploading("a.png")
        failed = transition(session, UploadFailed(token, "Upload failed"), MULTI).session
        retry_token = CancelToken()

        result = transition(failed, StartUpload(retry_token), MULTI)

        assert result.session.phase == Phase.UPLOADING
        assert result.session.last_error is None
        assert result.effects == (IssueRequest(failed.pending, retry_token),)


class TestReset:
    def test_reset_clears_everything(self):
        session = UploadSession(
            pending=(png("a.png"),),
            phase=Phase.FAILED,
            progress_percent=100.0,
            results=(record("x.png"),),
            last_error="boom",
        )

        result = transition(session, Reset(), MULTI)

        assert result.session == UploadSession()
        assert result.effects == ()

    def test_reset_while_uploading_aborts_first(self):
        session, token = uploading("a.png")

        result = transition(session, Reset(), MULTI)

        assert result.session == UploadSession()
        assert result.effects == (AbortRequest(token),)


def test_validate_selection_reports_all_duplicates():
    reason = validate_selection(
        [png("a.png"), png("b.png")], [png("a.png"), png("b.png"), png("c.png")], UploaderOptions(multiple=True, max_files=10)
    )

    assert reason == "Duplicate files detected: a.png, b.png"


def test_cancel_scoped_to_previous_batch_is_ignored():
    session, old_token = uploading("a.png")
    cancelled = transition(session, CancelUpload(), MULTI).session
    retry_token = CancelToken()
    retrying = transition(cancelled, StartUpload(retry_token), MULTI).session

    result = transition(retrying, CancelUpload(old_token), MULTI)

    assert result.session is retrying
    assert result.effects == ()


def test_cancel_scoped_to_current_batch_applies():
    session, token = uploading("a.png")

    result = transition(session, CancelUpload(token), MULTI)

    assert result.session.phase == Phase.CANCELLED
    assert result.effects == (AbortRequest(token),)
