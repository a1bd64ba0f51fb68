"""Run-level ingestion failures. Per-record problems never raise."""


class IngestionError(Exception):
    """Base class for errors that fail a whole ingestion run."""


class SourceFetchError(IngestionError):
    """The source page could not be downloaded (timeout, DNS, non-2xx)."""


class SourceFormatError(IngestionError):
    """The source was fetched but yielded no incidents; its format has likely changed."""
