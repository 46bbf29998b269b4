"""Control-file ingestion: turns reservation control sheets into stored reservations"""
from .importer import ControlFileImporter, ImportReport

__all__ = ["ControlFileImporter", "ImportReport"]
