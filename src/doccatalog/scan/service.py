"""Scan orchestration: discover, extract, classify, catalogue, archive."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

import httpx

from doccatalog.catalog import (
    CatalogError,
    Category,
    CategoryResolutionError,
    CategoryResolver,
    DuplicateDocumentError,
    NewDocument,
    SQLiteCatalog,
)
from doccatalog.classification import ClassificationClient, ClassificationSuggestion
from doccatalog.classification.models import UNCATEGORIZED_NAME
from doccatalog.config import CatalogConfig
from doccatalog.ingestion import (
    SUPPORTED_EXTENSIONS,
    CandidateFile,
    ContentExtractor,
    DirectoryScanner,
    TargetError,
    ensure_target,
)
from doccatalog.progress import ProgressChannel, ProgressReporter
from doccatalog.storage import FileStore

from .errors import ConfigurationError, NoOwnerIdentityError, NoUsableTargetsError, ScanError
from .models import ScanOutcome

LOGGER = logging.getLogger(__name__)

DEFAULT_DOCUMENT_DESCRIPTION = "Document imported automatically"


class Classifier(Protocol):
    @property
    def available(self) -> bool: ...

    def classify(
        self, text: str, file_name: str, kind_label: str
    ) -> ClassificationSuggestion: ...


class ScanService:
    """Run one ingestion pass over the configured folders.

    Files are processed sequentially within a scan. Several scans may run at
    the same time; they share only the repository, the classifier and the
    archive, and every piece of per-run state lives inside :meth:`run_scan`.
    """

    def __init__(
        self,
        repository: SQLiteCatalog,
        extractor: ContentExtractor,
        classifier: Classifier,
        resolver: CategoryResolver,
        file_store: FileStore,
        *,
        default_owner_id: Optional[str] = None,
        admin_role: str = "admin",
        supported_extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
        include_hidden: bool = False,
        delete_originals: bool = True,
        transcript_dir: Optional[Path] = None,
    ) -> None:
        self._repository = repository
        self._extractor = extractor
        self._classifier = classifier
        self._resolver = resolver
        self._file_store = file_store
        self._default_owner_id = default_owner_id
        self._admin_role = admin_role
        self._scanner = DirectoryScanner(
            extensions=supported_extensions, include_hidden=include_hidden
        )
        self._delete_originals = delete_originals
        self._transcript_dir = transcript_dir

    @classmethod
    def from_config(
        cls,
        config: CatalogConfig,
        *,
        http_client: Optional[httpx.Client] = None,
        classifier: Optional[Classifier] = None,
    ) -> "ScanService":
        """Wire a service from configuration.

        Args:
            config: Resolved configuration.
            http_client: Optional HTTP client shared by classification requests.
            classifier: Optional classifier replacing the HTTP client entirely.

        Returns:
            ScanService: Service ready to run scans.
        """
        repository = SQLiteCatalog(Path(config.storage.database_path))
        extraction = config.extraction
        if classifier is None:
            classifier = ClassificationClient(
                config.classifier, http_client=http_client, max_chars=extraction.max_chars
            )
        return cls(
            repository,
            ContentExtractor(
                max_chars=extraction.max_chars, max_rows=extraction.max_spreadsheet_rows
            ),
            classifier,
            CategoryResolver(repository),
            FileStore(Path(config.storage.archive_root)),
            default_owner_id=config.monitor.default_owner_id,
            admin_role=config.monitor.admin_role,
            include_hidden=config.monitor.include_hidden,
            delete_originals=config.monitor.delete_originals,
            transcript_dir=Path(config.logging.directory).expanduser(),
        )

    @property
    def repository(self) -> SQLiteCatalog:
        return self._repository

    def close(self) -> None:
        """Release the classifier's network resources, if it holds any."""
        close = getattr(self._classifier, "close", None)
        if callable(close):
            close()

    def run_scan(
        self,
        watch_targets: Sequence[Path | str],
        progress: Optional[ProgressReporter] = None,
    ) -> ScanOutcome:
        """Scan every watch target and catalogue new files.

        The progress reporter receives its terminal summary exactly once, also
        when the scan aborts.

        Args:
            watch_targets: Directories to scan, in order.
            progress: Observer of status lines, ticks and the final summary.

        Returns:
            ScanOutcome: Counts and per-path error details.

        Raises:
            ConfigurationError: If no target is configured.
            NoUsableTargetsError: If none of the targets can be used.
            NoOwnerIdentityError: If no owner identity can be determined.
            ScanError: If the scan aborted for any other reason.
        """
        channel = ProgressChannel(progress, self._transcript_dir)
        outcome = ScanOutcome()
        try:
            self._run(list(watch_targets), channel, outcome)
        except ScanError as exc:
            exc.outcome = outcome
            raise
        except Exception as exc:
            LOGGER.exception("Critical error while cataloguing documents")
            channel.error(f"CRITICAL ERROR while cataloguing documents: {exc}")
            outcome.record_error("scan", str(exc))
            raise ScanError(f"Scan aborted: {exc}", outcome) from exc
        finally:
            channel.complete(outcome.processed, outcome.errors, outcome.summary)
            outcome.transcript_path = channel.transcript_path
        return outcome

    # ------------------------------------------------------------------ #
    # Scan phases                                                        #
    # ------------------------------------------------------------------ #

    def _run(
        self,
        targets: list[Path | str],
        channel: ProgressChannel,
        outcome: ScanOutcome,
    ) -> None:
        channel.info("Initializing folder scan...")
        if not targets:
            message = "No folders configured for monitoring"
            channel.error(f"ERROR: {message}")
            outcome.record_error("monitor.folders", message)
            raise ConfigurationError(message)

        usable = self._prepare_targets(targets, channel, outcome)
        if not usable:
            message = "None of the configured folders is usable"
            channel.error(f"ERROR: {message}")
            raise NoUsableTargetsError(message)

        owner_id = self._resolve_owner(channel, outcome)

        channel.info(f"Checking the '{UNCATEGORIZED_NAME}' category...")
        try:
            sentinel = self._resolver.ensure_sentinel()
        except CatalogError as exc:
            channel.error(f"ERROR: Could not prepare the '{UNCATEGORIZED_NAME}' category: {exc}")
            outcome.record_error("categories", str(exc))
            raise ScanError(f"Could not prepare the '{UNCATEGORIZED_NAME}' category: {exc}") from exc

        channel.info("Counting files to process...")
        candidates = self._enumerate(usable, channel, outcome)
        outcome.discovered = len(candidates)
        if not candidates:
            channel.info("No files to process in the watched folders")
            return

        total = len(candidates)
        channel.info(f"Found {total} files to process")
        for candidate in candidates:
            channel.progress(outcome.processed + outcome.errors, total)
            try:
                self._process(candidate, owner_id, sentinel, channel, outcome)
            except Exception as exc:
                LOGGER.exception("Error while processing %s", candidate.path)
                channel.error(f"ERROR while processing {candidate.name}: {exc}")
                outcome.record_error(str(candidate.path), str(exc))

    def _prepare_targets(
        self,
        targets: list[Path | str],
        channel: ProgressChannel,
        outcome: ScanOutcome,
    ) -> list[Path]:
        channel.info(f"Folders to monitor: {', '.join(str(target) for target in targets)}")
        usable: list[Path] = []
        for raw in targets:
            target = ensure_target(raw)
            if target.error is not None:
                channel.error(f"ERROR: Could not use folder {target.path}: {target.error}")
                outcome.record_target_error(str(target.path), target.error)
                continue
            if target.created:
                channel.warning(f"Folder {target.path} did not exist")
                channel.success(f"Folder created: {target.path}")
            else:
                channel.success(f"Folder found: {target.path}")
            usable.append(target.path)
        return usable

    def _resolve_owner(self, channel: ProgressChannel, outcome: ScanOutcome) -> str:
        if self._default_owner_id:
            return self._default_owner_id

        channel.warning(
            "Default owner is not configured; the first user with the "
            f"'{self._admin_role}' role will be used"
        )
        try:
            users = self._repository.find_users_in_role(self._admin_role)
        except CatalogError as exc:
            LOGGER.error("Could not look up users in role %s: %s", self._admin_role, exc)
            users = []

        if users:
            owner_id = users[0].id
            channel.success(f"Found administrator ID: {owner_id}")
            return owner_id

        message = "Could not find a valid administrator user ID"
        channel.error(f"ERROR: {message}")
        outcome.record_error("monitor.default_owner_id", message)
        raise NoOwnerIdentityError(message)

    def _enumerate(
        self,
        targets: list[Path],
        channel: ProgressChannel,
        outcome: ScanOutcome,
    ) -> list[CandidateFile]:
        candidates: list[CandidateFile] = []
        for target in targets:
            try:
                found = self._scanner.scan(target)
            except TargetError as exc:
                LOGGER.error("Error while scanning folder %s: %s", target, exc)
                channel.error(f"ERROR while scanning folder {target}: {exc}")
                outcome.record_target_error(str(target), str(exc))
                continue
            LOGGER.info("Found %d files in folder %s", len(found), target)
            candidates.extend(found)
        return candidates

    # ------------------------------------------------------------------ #
    # Per-file pipeline                                                  #
    # ------------------------------------------------------------------ #

    def _process(
        self,
        candidate: CandidateFile,
        owner_id: str,
        sentinel: Category,
        channel: ProgressChannel,
        outcome: ScanOutcome,
    ) -> None:
        name = candidate.name
        source = candidate.path

        if self._repository.exists_by_source_path(source):
            channel.info(f"File {name} has already been processed")
            outcome.skipped += 1
            outcome.processed += 1
            return

        channel.info(f"Processing {candidate.label} file {name}...")
        channel.info(f"Extracting text from {name}...")
        extraction = self._extractor.extract(source, candidate.kind)
        if extraction.diagnostic:
            channel.warning(f"{name}: {extraction.diagnostic}")
        text = extraction.text
        if extraction.is_empty:
            channel.warning(f"No content extracted from {name}")
            text = f"[No content extracted from {candidate.extension} file]"

        category, suggestion = self._categorize(candidate, text, sentinel, channel)
        size_bytes = source.stat().st_size

        channel.info("Copying the file to the archive...")
        stored = self._file_store.archive(source, owner_id)
        relocated = stored != source
        if relocated:
            channel.success("File copied to the archive")
        else:
            channel.warning("Could not copy the file; the original location will be used")

        document = NewDocument(
            name=name,
            description=suggestion.rationale or DEFAULT_DOCUMENT_DESCRIPTION,
            kind=candidate.kind,
            storage_path=str(stored),
            size_bytes=size_bytes,
            category_id=category.id,
            tags=suggestion.tags,
            confidential=suggestion.confidential,
            uploaded_by=owner_id,
            source_path=str(source),
        )
        try:
            record = self._repository.create_document(document)
        except DuplicateDocumentError:
            if relocated:
                self._file_store.discard(stored)
            channel.info(f"File {name} was catalogued by another scan in the meantime")
            outcome.skipped += 1
            outcome.processed += 1
            return
        except Exception:
            if relocated:
                self._file_store.discard(stored)
            raise

        channel.success(f"Document saved with ID {record.id}")
        if relocated and self._delete_originals:
            if self._file_store.delete_original(source):
                channel.info(f"Original file {name} removed")
            else:
                channel.warning(f"Could not remove original file {name}")

        outcome.ingested += 1
        outcome.processed += 1
        channel.success(f"Document {name} catalogued in category {category.name}")

    def _categorize(
        self,
        candidate: CandidateFile,
        text: str,
        sentinel: Category,
        channel: ProgressChannel,
    ) -> tuple[Category, ClassificationSuggestion]:
        name = candidate.name
        if not self._classifier.available:
            channel.warning(f"Classification service unavailable, using '{sentinel.name}'")
            return sentinel, ClassificationSuggestion.fallback("Classification service unavailable")

        channel.info(f"Classifying the content of {name}...")
        try:
            suggestion = self._classifier.classify(text, name, candidate.label)
        except Exception as exc:
            LOGGER.error("Classification of %s failed: %s", name, exc)
            channel.warning(f"Error while classifying {name}: {exc}. Using '{sentinel.name}'")
            return sentinel, ClassificationSuggestion.fallback(f"Classification failed: {exc}")

        if suggestion.is_fallback:
            channel.warning(f"No category suggested for {name}, using '{sentinel.name}'")
            return sentinel, suggestion

        try:
            resolution = self._resolver.resolve(suggestion.category, suggestion.description)
        except CategoryResolutionError as exc:
            channel.warning(
                f"Could not resolve category '{suggestion.category}' for {name}: {exc}. "
                f"Using '{sentinel.name}'"
            )
            return sentinel, suggestion

        category = resolution.category
        if resolution.created:
            channel.success(f"Created category '{category.name}'")
        else:
            channel.info(f"Using existing category '{category.name}'")
        return category, suggestion


__all__ = ["ScanService", "Classifier", "DEFAULT_DOCUMENT_DESCRIPTION"]
