"""Main import orchestrator"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .detector import ControlFileDetector
from .errors import ExtractionError
from .extraction import CONTROL_FILE_CONTRACT, ExtractionAdapter, ExtractionContract, parse_reservations, sanitize_response
from .models import (
    ExistingReservation,
    NormalizedRecord,
    PersistenceResult,
    PropertyCandidate,
    RawDocumentText,
    ValidationOutcome,
    ValidationSummary,
)
from .normalizer import format_date_for_display, normalize_record
from .property_resolver import PropertyResolver
from .reservation_factory import ReservationFactory
from .store import ReservationStore
from .text_extractor import TextExtractor
from .validator import ReservationValidator, summarize

logger = logging.getLogger(__name__)

EMPTY_SUMMARY = ValidationSummary(valid=0, duplicates=0, invalid=0, total=0)


@dataclass
class ImportReport:
    """Everything that happened while importing one control file"""
    success: bool
    is_control_file: bool
    property_name: str = ""
    resolved_property: Optional[PropertyCandidate] = None
    total_found: int = 0
    outcomes: List[ValidationOutcome] = field(default_factory=list)
    summary: ValidationSummary = EMPTY_SUMMARY
    created: List[ExistingReservation] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def created_ids(self) -> List[int]:
        return [r.id for r in self.created]

    def results(self) -> Dict[str, List[Dict[str, Any]]]:
        """Per-record detail grouped as valid / duplicates / invalid, with display dates"""
        failed_indices = {f["index"] for f in self.failed}
        valid, duplicates, invalid = [], [], []

        for index, outcome in enumerate(self.outcomes):
            record = outcome.record
            if outcome.is_duplicate:
                existing = outcome.conflicting_record
                duplicates.append({
                    **_display_fields(record),
                    "existingReservation": {
                        "id": existing.id,
                        "guestName": existing.guest_name,
                        "checkInDate": format_date_for_display(existing.check_in_date),
                        "checkOutDate": format_date_for_display(existing.check_out_date),
                    } if existing else None,
                })
            elif outcome.is_valid:
                valid.append({
                    **_display_fields(record),
                    "added": index not in failed_indices,
                    "warnings": list(outcome.errors),
                })
            else:
                invalid.append({
                    "guestName": record.guest_name or "(no name)",
                    "checkInDate": format_date_for_display(record.check_in_date),
                    "checkOutDate": format_date_for_display(record.check_out_date),
                    "errors": list(outcome.errors),
                })

        return {"valid": valid, "duplicates": duplicates, "invalid": invalid}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "isControlFile": self.is_control_file,
            "propertyName": self.property_name,
            "propertyId": self.resolved_property.property_id if self.resolved_property else None,
            "matchScore": self.resolved_property.match_score if self.resolved_property else None,
            "totalFound": self.total_found,
            "summary": self.summary.to_dict(),
            "results": self.results(),
            "created": len(self.created),
            "createdIds": self.created_ids,
            "failed": self.failed,
        }
        if self.error:
            data["error"] = self.error
        return data


def _display_fields(record: NormalizedRecord) -> Dict[str, Any]:
    return {
        "guestName": record.guest_name,
        "checkInDate": format_date_for_display(record.check_in_date),
        "checkOutDate": format_date_for_display(record.check_out_date),
        "numGuests": record.num_guests,
        "totalAmount": record.total_amount,
        "platform": record.platform,
    }


class ControlFileImporter:
    """Runs one control file through detection, extraction, validation and persistence"""

    def __init__(self,
                 adapter: ExtractionAdapter,
                 store: ReservationStore,
                 text_extractor: Optional[TextExtractor] = None,
                 detector: Optional[ControlFileDetector] = None,
                 resolver: Optional[PropertyResolver] = None,
                 factory: Optional[ReservationFactory] = None,
                 contract: ExtractionContract = CONTROL_FILE_CONTRACT):
        self.adapter = adapter
        self.store = store
        self.text_extractor = text_extractor or TextExtractor()
        self.detector = detector or ControlFileDetector()
        self.resolver = resolver or PropertyResolver()
        self.validator = ReservationValidator(store)
        self.factory = factory or ReservationFactory()
        self.contract = contract
        self._write_lock = threading.Lock()

    def import_pdf(self, pdf_bytes: bytes, source_name: str = "",
                   cancel_event: Optional[threading.Event] = None) -> ImportReport:
        """
        Import a control-file PDF

        Raises:
            PdfReadError: when the PDF cannot be read; nothing is processed
        """
        document = self.text_extractor.extract(pdf_bytes, source_name=source_name)
        return self.import_text(document, cancel_event=cancel_event)

    def import_file(self, path: str,
                    cancel_event: Optional[threading.Event] = None) -> ImportReport:
        document = self.text_extractor.extract_file(path)
        return self.import_text(document, cancel_event=cancel_event)

    def import_text(self, document: RawDocumentText,
                    cancel_event: Optional[threading.Event] = None) -> ImportReport:
        # 1. Classify
        detection = self.detector.detect(document)
        if not detection.is_control_file:
            return ImportReport(success=True, is_control_file=False)

        property_name = detection.declared_property_name

        # 2. Resolve the declared property against the catalog
        candidate = self.resolver.resolve(property_name, self.store.get_properties())
        property_id = candidate.property_id if candidate else None

        # 3. Extract candidate rows
        try:
            raw_response = self.adapter.extract(document.text, self.contract)
            rows = parse_reservations(sanitize_response(raw_response))
        except ExtractionError as e:
            logger.error("Extraction failed for %s: %s", document.source_name or "document", e)
            return ImportReport(
                success=False,
                is_control_file=True,
                property_name=property_name,
                resolved_property=candidate,
                error=str(e),
            )
        logger.info("Extracted %d reservations for %s", len(rows), property_name)

        # 4. Normalize and validate
        records = [normalize_record(row, property_id) for row in rows]

        # Duplicate check and creation must not interleave with another import
        with self._write_lock:
            outcomes = self.validator.validate_all(records)
            summary = summarize(outcomes)

            # 5. Persist valid, non-duplicate records one at a time
            persistence = self.persist(outcomes, cancel_event=cancel_event)

        logger.info(
            "Import of %s finished: %d valid, %d duplicates, %d invalid, %d created, %d failed",
            property_name, summary.valid, summary.duplicates, summary.invalid,
            len(persistence.created), len(persistence.failed),
        )

        return ImportReport(
            success=True,
            is_control_file=True,
            property_name=property_name,
            resolved_property=candidate,
            total_found=len(rows),
            outcomes=outcomes,
            summary=summary,
            created=persistence.created,
            failed=persistence.failed,
            error=persistence.failed[-1]["error"] if persistence.failed else None,
        )

    def persist(self, outcomes: Sequence[ValidationOutcome],
                cancel_event: Optional[threading.Event] = None) -> PersistenceResult:
        """
        Create a reservation for each valid, non-duplicate outcome

        A failure on one record is recorded and the loop moves on. Records
        overlapping one already created in this run are not created.
        """
        result = PersistenceResult()

        for index, outcome in enumerate(outcomes):
            if not outcome.is_valid or outcome.is_duplicate:
                continue
            record = outcome.record

            if cancel_event is not None and cancel_event.is_set():
                result.failed.append(_failure(index, record, "Import cancelled before this record"))
                continue

            clash = _overlapping_created(record, result.created)
            if clash is not None:
                result.failed.append(_failure(
                    index, record, f"Overlaps reservation {clash.id} created earlier in this import"
                ))
                continue

            try:
                prop = self.store.get_property(record.property_id)
                reservation = self.factory.build(record, prop)
                created = self.store.create_reservation(reservation)
            except Exception as e:
                logger.warning("Could not create reservation for %r: %s", record.guest_name, e)
                result.failed.append(_failure(index, record, str(e)))
                continue

            result.created.append(created)
            self._record_activity(created)

        return result

    def _record_activity(self, created: ExistingReservation):
        try:
            self.store.record_activity(
                "reservation_created",
                f"Reservation created from control file: {created.property_id} - {created.guest_name}",
                entity_id=created.id,
                entity_type="reservation",
            )
        except Exception as e:
            logger.warning("Could not record activity for reservation %s: %s", created.id, e)


def _failure(index: int, record: NormalizedRecord, message: str) -> Dict[str, Any]:
    return {"index": index, "guestName": record.guest_name, "error": message}


def _overlapping_created(record: NormalizedRecord,
                         created: Sequence[ExistingReservation]) -> Optional[ExistingReservation]:
    check_in = date.fromisoformat(record.check_in_date)
    check_out = date.fromisoformat(record.check_out_date)
    for reservation in created:
        if reservation.property_id == record.property_id and reservation.overlaps(check_in, check_out):
            return reservation
    return None
