# ABOUTME: Exception types shared by the EPUB codec and the export bundles.
# ABOUTME: FormatError covers unreadable EPUBs; ExportError covers failed bundle serialization.


class FormatError(Exception):
    """Raised when an archive is not a structurally valid EPUB."""


class ExportError(Exception):
    """Raised when an export bundle (archive or PDF) cannot be produced."""
