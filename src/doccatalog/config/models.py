"""Configuration models describing doccatalog settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogBaseModel(BaseModel):
    """Shared configuration for doccatalog Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class MonitorSettings(CatalogBaseModel):
    """Settings for the folders scanned by the ingestion pipeline.

    Attributes:
        folders: Ordered list of directories to scan.
        default_owner_id: Identity recorded as the uploader of ingested documents.
        admin_role: Role searched for when no default owner is configured.
        delete_originals: Whether archived originals are removed from the watched folder.
        include_hidden: Whether hidden files and directories are scanned.
    """

    folders: List[str] = Field(default_factory=list)
    default_owner_id: Optional[str] = None
    admin_role: str = "admin"
    delete_originals: bool = True
    include_hidden: bool = False


class StorageSettings(CatalogBaseModel):
    """Locations of the catalog database and the document archive.

    Attributes:
        database_path: SQLite database holding categories, documents, and users.
        archive_root: Directory receiving owner-scoped copies of ingested files.
    """

    database_path: str = "~/.doccatalog/catalog.db"
    archive_root: str = "~/.doccatalog/storage"


class ClassifierSettings(CatalogBaseModel):
    """Classification service options.

    Attributes:
        endpoint: Chat-completions URL of the classification service.
        api_key: Bearer credential attached to each request.
        model: Model name to target when issuing requests.
        temperature: Sampling temperature for generative calls.
        max_tokens: Maximum number of tokens in responses.
        timeout_seconds: Network timeout for a single request.
        exchange_log_path: Plain-text log of every request and response.
    """

    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    model: str = "mistral-small-latest"
    temperature: float = 0.3
    max_tokens: int = 1_000
    timeout_seconds: float = 60.0
    exchange_log_path: Optional[str] = "~/.doccatalog/logs/classifier-exchanges.txt"


class ExtractionSettings(CatalogBaseModel):
    """Limits applied while extracting text.

    Attributes:
        max_chars: Maximum characters kept from a document before truncation.
        max_spreadsheet_rows: Rows read from each worksheet.
    """

    max_chars: int = 10_000
    max_spreadsheet_rows: int = 100


class LoggingSettings(CatalogBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        directory: Directory for rotating logs and scan transcripts.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    directory: str = "~/.doccatalog/logs"
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(CatalogBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class CatalogConfig(CatalogBaseModel):
    """Top-level configuration struct for doccatalog."""

    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "CatalogBaseModel",
    "MonitorSettings",
    "StorageSettings",
    "ClassifierSettings",
    "ExtractionSettings",
    "LoggingSettings",
    "CLIOptions",
    "CatalogConfig",
]
