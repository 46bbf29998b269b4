"""Exceptions raised by the import pipeline"""


class ControlImportError(Exception):
    """Base class for control-file import failures"""


class PdfReadError(ControlImportError):
    """The uploaded document could not be read as a text PDF"""


class ExtractionError(ControlImportError):
    """The extraction service failed or timed out"""


class ResponseParseError(ExtractionError):
    """The extraction service answered with something that is not reservation JSON"""


class StoreError(ControlImportError):
    """A read or write against the reservation store failed"""
