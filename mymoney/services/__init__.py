"""Services package."""

from mymoney.services.api import (
    AuthenticationError,
    MyMoneyApiClient,
    NetworkError,
)
from mymoney.services.export import (
    CsvReportExporter,
    EmptyReportError,
    ExportError,
    ExportFormat,
    HtmlDocumentExporter,
    ReportExporter,
    UnsupportedDocumentExporter,
    UnsupportedPlatformError,
    get_exporter,
)
from mymoney.services.storage import (
    BlobStoreInterface,
    InMemoryBlobStore,
    JsonFileBlobStore,
    StorageError,
)

__all__ = [
    # API
    "AuthenticationError",
    "MyMoneyApiClient",
    "NetworkError",
    # Export
    "CsvReportExporter",
    "EmptyReportError",
    "ExportError",
    "ExportFormat",
    "HtmlDocumentExporter",
    "ReportExporter",
    "UnsupportedDocumentExporter",
    "UnsupportedPlatformError",
    "get_exporter",
    # Storage
    "BlobStoreInterface",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "StorageError",
]
