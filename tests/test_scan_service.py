"""Tests for the scan orchestrator."""

from __future__ import annotations

import json
import shutil
import threading
from pathlib import Path
from typing import Optional

import httpx
import pytest

from doccatalog.catalog import CategoryResolver, DuplicateDocumentError, SQLiteCatalog
from doccatalog.classification import ClassificationSuggestion
from doccatalog.config import CatalogConfig
from doccatalog.ingestion import ContentExtractor, DirectoryScanner, DocumentKind, TargetError
from doccatalog.ingestion.models import ExtractionResult
from doccatalog.progress import RecordingProgressReporter
from doccatalog.scan import (
    ConfigurationError,
    NoOwnerIdentityError,
    NoUsableTargetsError,
    ScanOutcome,
    ScanService,
)
from doccatalog.storage import FileStore


class _StubClassifier:
    def __init__(
        self,
        suggestion: Optional[ClassificationSuggestion] = None,
        *,
        available: bool = True,
    ) -> None:
        self.suggestion = suggestion or ClassificationSuggestion(
            category="Invoices", description="Billing", tags=["billing"], rationale="VAT"
        )
        self.available = available
        self.calls: list[tuple[str, str, str]] = []

    def classify(self, text: str, file_name: str, kind_label: str) -> ClassificationSuggestion:
        self.calls.append((text, file_name, kind_label))
        return self.suggestion


class _FailingExtractor(ContentExtractor):
    def __init__(self, failing_name: str) -> None:
        super().__init__()
        self.failing_name = failing_name

    def extract(self, path: Path, kind: DocumentKind) -> ExtractionResult:
        if path.name == self.failing_name:
            raise RuntimeError("corrupt file")
        return super().extract(path, kind)


def _service(
    tmp_path: Path,
    *,
    classifier: Optional[_StubClassifier] = None,
    extractor: Optional[ContentExtractor] = None,
    owner: Optional[str] = "owner-1",
    delete_originals: bool = True,
    catalog: Optional[SQLiteCatalog] = None,
) -> ScanService:
    catalog = catalog or SQLiteCatalog(tmp_path / "catalog.db")
    return ScanService(
        catalog,
        extractor or ContentExtractor(),
        classifier or _StubClassifier(),
        CategoryResolver(catalog),
        FileStore(tmp_path / "archive"),
        default_owner_id=owner,
        delete_originals=delete_originals,
        transcript_dir=tmp_path / "logs",
    )


def _inbox(tmp_path: Path, files: dict[str, str]) -> Path:
    inbox = tmp_path / "inbox"
    inbox.mkdir(exist_ok=True)
    for name, content in files.items():
        (inbox / name).write_text(content, encoding="utf-8")
    return inbox


def test_scan_ingests_archives_and_removes_original(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"invoice.txt": "Invoice 42, total 100 EUR"})
    classifier = _StubClassifier()
    service = _service(tmp_path, classifier=classifier)
    recorder = RecordingProgressReporter()

    outcome = service.run_scan([inbox], recorder)

    assert (outcome.discovered, outcome.processed, outcome.ingested, outcome.errors) == (1, 1, 1, 0)
    source = (inbox / "invoice.txt").resolve()
    assert not source.exists()
    document = service.repository.get_document_by_source_path(source)
    assert document is not None
    assert document.kind is DocumentKind.TEXT
    assert document.tags == ["billing"]
    assert document.uploaded_by == "owner-1"
    assert document.size_bytes == len("Invoice 42, total 100 EUR")
    stored = Path(document.storage_path)
    assert stored.parent == tmp_path / "archive" / "owner-1"
    assert stored.read_text(encoding="utf-8") == "Invoice 42, total 100 EUR"
    names = {category.name for category in service.repository.list_categories()}
    assert names == {"Invoices", "Uncategorized"}
    assert classifier.calls == [("Invoice 42, total 100 EUR", "invoice.txt", "Text")]
    assert recorder.ticks == [(0, 1)]
    assert len(recorder.completions) == 1
    assert recorder.completions[0][:2] == (1, 0)
    assert outcome.transcript_path is not None and outcome.transcript_path.exists()
    assert recorder.log_files == [outcome.transcript_path]


def test_second_scan_skips_already_catalogued_files(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha", "b.csv": "x,y\n1,2"})
    service = _service(tmp_path, delete_originals=False)

    first = service.run_scan([inbox])
    second = service.run_scan([inbox])

    assert first.ingested == 2
    assert second.ingested == 0
    assert second.processed == 2
    assert second.skipped == 2
    assert second.errors == 0
    assert second.error_details == {}
    assert service.repository.count_documents() == 2


def test_one_failing_file_does_not_abort_the_scan(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {f"f{index}.txt": f"file {index}" for index in range(1, 6)})
    service = _service(tmp_path, extractor=_FailingExtractor("f3.txt"))
    recorder = RecordingProgressReporter()

    outcome = service.run_scan([inbox], recorder)

    assert outcome.processed == 4
    assert outcome.errors == 1
    failing = str((inbox / "f3.txt").resolve())
    assert outcome.error_details == {failing: "corrupt file"}
    assert (inbox / "f3.txt").exists()
    assert recorder.ticks == [(0, 5), (1, 5), (2, 5), (3, 5), (4, 5)]
    assert recorder.completions[0][:2] == (4, 1)


def test_long_text_reaches_classifier_truncated(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"long.txt": "x" * 15_000})
    classifier = _StubClassifier()

    _service(tmp_path, classifier=classifier).run_scan([inbox])

    assert classifier.calls[0][0] == "x" * 10_000 + "..."


def test_empty_target_list_is_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _never(self: DirectoryScanner, root: Path) -> list:
        raise AssertionError("enumeration must not run")

    monkeypatch.setattr(DirectoryScanner, "scan", _never)
    recorder = RecordingProgressReporter()

    with pytest.raises(ConfigurationError) as excinfo:
        _service(tmp_path).run_scan([], recorder)

    assert len(recorder.completions) == 1
    assert recorder.completions[0][:2] == (0, 1)
    assert excinfo.value.outcome is not None
    assert excinfo.value.outcome.errors == 1


def test_no_usable_target_is_fatal(tmp_path: Path) -> None:
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x", encoding="utf-8")
    recorder = RecordingProgressReporter()

    with pytest.raises(NoUsableTargetsError) as excinfo:
        _service(tmp_path).run_scan([not_a_dir], recorder)

    assert isinstance(excinfo.value, ConfigurationError)
    assert recorder.completions[0][:2] == (0, 1)
    assert excinfo.value.outcome is not None
    assert excinfo.value.outcome.target_errors == [str(not_a_dir)]


def test_missing_target_is_created(tmp_path: Path) -> None:
    missing = tmp_path / "new-inbox"
    recorder = RecordingProgressReporter()

    outcome = _service(tmp_path).run_scan([missing], recorder)

    assert missing.is_dir()
    assert outcome.errors == 0
    assert any("Folder created" in message for message in recorder.messages)


def test_unusable_target_is_recorded_when_another_works(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x", encoding="utf-8")

    outcome = _service(tmp_path).run_scan([not_a_dir, inbox])

    assert outcome.ingested == 1
    assert outcome.errors == 1
    assert outcome.target_errors == [str(not_a_dir)]


def test_enumeration_failure_is_recorded_per_target(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    good = _inbox(tmp_path, {"a.txt": "alpha"})
    bad = tmp_path / "locked"
    bad.mkdir()
    original_scan = DirectoryScanner.scan

    def _scan(self: DirectoryScanner, root: Path) -> list:
        if root == bad:
            raise TargetError(root, "Permission denied")
        return original_scan(self, root)

    monkeypatch.setattr(DirectoryScanner, "scan", _scan)

    outcome = _service(tmp_path).run_scan([bad, good])

    assert outcome.ingested == 1
    assert outcome.error_details[str(bad)] == "Permission denied"
    assert outcome.target_errors == [str(bad)]


def test_missing_owner_identity_is_fatal(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    recorder = RecordingProgressReporter()

    with pytest.raises(NoOwnerIdentityError):
        _service(tmp_path, owner=None).run_scan([inbox], recorder)

    assert len(recorder.completions) == 1
    assert recorder.completions[0][:2] == (0, 1)
    assert (inbox / "a.txt").exists()


def test_owner_falls_back_to_first_administrator(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    catalog = SQLiteCatalog(tmp_path / "catalog.db")
    catalog.add_user("admin-7", "root", "admin")
    service = _service(tmp_path, owner=None, catalog=catalog)

    service.run_scan([inbox])

    document = catalog.get_document_by_source_path((inbox / "a.txt").resolve())
    assert document is not None
    assert document.uploaded_by == "admin-7"


def test_archive_failure_keeps_original_location(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})

    def _fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(shutil, "copy2", _fail)
    service = _service(tmp_path)

    outcome = service.run_scan([inbox])

    source = (inbox / "a.txt").resolve()
    assert outcome.ingested == 1
    assert source.exists()
    document = service.repository.get_document_by_source_path(source)
    assert document is not None
    assert document.storage_path == str(source)


def test_unavailable_classifier_uses_sentinel(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    classifier = _StubClassifier(available=False)
    service = _service(tmp_path, classifier=classifier)
    recorder = RecordingProgressReporter()

    outcome = service.run_scan([inbox], recorder)

    assert outcome.errors == 0
    assert classifier.calls == []
    document = service.repository.get_document_by_source_path((inbox / "a.txt").resolve())
    sentinel = service.repository.find_category_by_name("Uncategorized")
    assert document is not None and sentinel is not None
    assert document.category_id == sentinel.id
    assert document.tags == ["uncategorized"]
    assert any("unavailable" in message for message in recorder.messages)


def test_fallback_suggestion_uses_sentinel(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    classifier = _StubClassifier(ClassificationSuggestion.fallback("unparsable"))
    service = _service(tmp_path, classifier=classifier)

    service.run_scan([inbox])

    assert [category.name for category in service.repository.list_categories()] == [
        "Uncategorized"
    ]


def test_empty_file_gets_placeholder_text(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"blank.txt": ""})
    classifier = _StubClassifier()

    outcome = _service(tmp_path, classifier=classifier).run_scan([inbox])

    assert outcome.ingested == 1
    assert classifier.calls[0][0] == "[No content extracted from .txt file]"


def test_document_won_by_concurrent_scan_counts_as_processed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    inbox = _inbox(tmp_path, {"a.txt": "alpha"})
    service = _service(tmp_path)

    def _duplicate(document):
        raise DuplicateDocumentError(document.source_path)

    monkeypatch.setattr(service.repository, "create_document", _duplicate)

    outcome = service.run_scan([inbox])

    assert outcome.processed == 1
    assert outcome.skipped == 1
    assert outcome.errors == 0
    assert (inbox / "a.txt").exists()
    assert list((tmp_path / "archive" / "owner-1").iterdir()) == []


def test_concurrent_scans_catalogue_each_file_once(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {f"doc{index}.txt": f"content {index}" for index in range(6)})
    catalog = SQLiteCatalog(tmp_path / "catalog.db")
    outcomes: list[ScanOutcome] = []
    lock = threading.Lock()

    def _run() -> None:
        outcome = _service(tmp_path, catalog=catalog, delete_originals=False).run_scan([inbox])
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=_run) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == 3
    assert all(outcome.errors == 0 for outcome in outcomes)
    assert sum(outcome.ingested for outcome in outcomes) == 6
    assert catalog.count_documents() == 6
    assert len(catalog.list_categories()) == 2
    assert len(list((tmp_path / "archive" / "owner-1").iterdir())) == 6
    transcripts = {outcome.transcript_path for outcome in outcomes}
    assert len(transcripts) == 3
    assert all(path is not None and path.exists() for path in transcripts)


def test_summary_lists_first_errors_and_counts_the_rest() -> None:
    outcome = ScanOutcome(processed=2)
    for index in range(7):
        outcome.record_error(f"/inbox/bad{index}.pdf", "unreadable")

    lines = outcome.summary_lines()

    assert lines[0] == "Cataloguing complete: 2 documents processed, 7 errors"
    assert lines[1] == "Error details:"
    assert lines[2:7] == [f"  - bad{index}.pdf: unreadable" for index in range(5)]
    assert lines[7] == "  ... and 2 more errors. Check the logs for details."


def test_summary_without_documents() -> None:
    assert ScanOutcome().summary_lines() == ["No new documents found in the watched folders"]


def test_from_config_runs_end_to_end(tmp_path: Path) -> None:
    inbox = _inbox(tmp_path, {"contract.txt": "This agreement is signed by both parties."})
    config = CatalogConfig.model_validate(
        {
            "monitor": {"folders": [str(inbox)], "default_owner_id": "owner-1"},
            "storage": {
                "database_path": str(tmp_path / "catalog.db"),
                "archive_root": str(tmp_path / "archive"),
            },
            "classifier": {
                "endpoint": "https://classifier.test/v1/chat/completions",
                "api_key": "secret",
                "exchange_log_path": str(tmp_path / "exchanges.txt"),
            },
            "logging": {"directory": str(tmp_path / "logs")},
        }
    )
    reply = {"category": "Contracts", "tags": ["legal"], "confidential": True}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"choices": [{"message": {"content": json.dumps(reply)}}]}
        )

    service = ScanService.from_config(
        config, http_client=httpx.Client(transport=httpx.MockTransport(handler))
    )

    outcome = service.run_scan(config.monitor.folders)

    assert outcome.ingested == 1
    catalog = SQLiteCatalog(tmp_path / "catalog.db")
    document = catalog.get_document_by_source_path((inbox / "contract.txt").resolve())
    assert document is not None
    assert document.confidential is True
    contracts = catalog.find_category_by_name("contracts")
    assert contracts is not None
    assert document.category_id == contracts.id
    assert (tmp_path / "exchanges.txt").exists()
    assert outcome.transcript_path is not None
    assert outcome.transcript_path.parent == tmp_path / "logs"
