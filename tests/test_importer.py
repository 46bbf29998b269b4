import json
import threading

import pytest

from control_importer.errors import PdfReadError, StoreError
from control_importer.importer import ControlFileImporter
from control_importer.models import RawDocumentText

from .conftest import CONTROL_TEXT, FakeAdapter, make_pdf, row


def run(store, response, text=CONTROL_TEXT, **kwargs):
    adapter = FakeAdapter(response)
    importer = ControlFileImporter(adapter=adapter, store=store)
    return importer.import_text(RawDocumentText(text=text, source_name="Controlo.pdf"), **kwargs)


def test_end_to_end_one_new_one_duplicate(store, two_row_response):
    report = run(store, two_row_response)

    assert report.success
    assert report.is_control_file
    assert report.property_name == "Aroeira I"
    assert report.resolved_property.property_id == 1
    assert report.total_found == 2
    assert report.summary.to_dict() == {"valid": 1, "duplicates": 1, "invalid": 0, "total": 2}
    assert len(report.created) == 1
    assert report.error is None

    created = store.reservations[-1]
    assert created.guest_name == "Maria Silva"
    assert created.check_in_date == "2024-06-01"
    assert created.extra["platformFee"] == "70.00"
    assert created.extra["netAmount"] == "380.00"


def test_report_results_use_display_dates(store, two_row_response):
    results = run(store, two_row_response).to_dict()["results"]

    assert results["valid"][0]["checkInDate"] == "01/06/2024"
    assert results["valid"][0]["added"] is True
    duplicate = results["duplicates"][0]
    assert duplicate["guestName"] == "John Smith"
    assert duplicate["existingReservation"] == {
        "id": 1, "guestName": "Existing Guest", "checkInDate": "10/07/2024", "checkOutDate": "15/07/2024",
    }
    assert results["invalid"] == []


def test_not_a_control_file_stops_early(store):
    adapter = FakeAdapter("[]")
    importer = ControlFileImporter(adapter=adapter, store=store)
    report = importer.import_text(RawDocumentText(text="Invoice 42\nTotal 10,00"))

    assert report.success
    assert not report.is_control_file
    assert adapter.calls == []
    assert store.activities == []


def test_adapter_failure_is_a_run_level_failure(store, failing_adapter):
    importer = ControlFileImporter(adapter=failing_adapter, store=store)
    report = importer.import_text(RawDocumentText(text=CONTROL_TEXT))

    assert not report.success
    assert report.is_control_file
    assert "timed out" in report.error
    assert report.outcomes == []
    assert report.created == []


def test_malformed_response_is_a_run_level_failure(store):
    report = run(store, "I found two reservations: Maria and John")
    assert not report.success
    assert "not valid JSON" in report.error


def test_fenced_response_is_accepted(store, two_row_response):
    report = run(store, f"```json\n{two_row_response}\n```")
    assert report.success
    assert report.summary.total == 2


def test_empty_extraction_is_not_an_error(store):
    report = run(store, {"reservations": []})
    assert report.success
    assert report.summary.total == 0
    assert report.created == []


def test_one_bad_row_does_not_stop_the_others(store):
    rows = [
        row("Guest One", "01/05/2024", "03/05/2024"),
        row("Guest Two", "04/05/2024", "06/05/2024"),
        row("Guest Three", "10/05/2024", "08/05/2024"),
        row("Guest Four", "12/05/2024", "14/05/2024"),
        row("Guest Five", "16/05/2024", "18/05/2024"),
    ]
    report = run(store, rows)

    assert report.success
    assert len(report.created) == 4
    assert report.summary.invalid == 1
    invalid = report.to_dict()["results"]["invalid"]
    assert invalid[0]["guestName"] == "Guest Three"
    assert "Check-in date is after check-out date" in invalid[0]["errors"]


def test_unreadable_amount_only_invalidates_its_row(store):
    rows = [
        row("Guest One", "01/05/2024", "03/05/2024"),
        row("Guest Two", "04/05/2024", "06/05/2024", amount="1" * 27),
        row("Guest Three", "08/05/2024", "10/05/2024", amount=1e30),
    ]
    report = run(store, rows)

    assert report.success
    assert [r.guest_name for r in report.created] == ["Guest One"]
    assert report.summary.invalid == 2
    for entry in report.to_dict()["results"]["invalid"]:
        assert "Total amount invalid" in entry["errors"]


def test_package_exports_report_type(store, two_row_response):
    import control_importer

    report = run(store, two_row_response)
    assert isinstance(report, control_importer.ImportReport)
    assert report.created_ids == [r.id for r in report.created]
    assert report.to_dict()["propertyId"] == 1


def test_persistence_failure_is_isolated(store, monkeypatch):
    original = store.create_reservation

    def flaky(reservation):
        if reservation.guest_name == "Guest Two":
            raise StoreError("constraint violation")
        return original(reservation)

    monkeypatch.setattr(store, "create_reservation", flaky)
    rows = [
        row("Guest One", "01/05/2024", "03/05/2024"),
        row("Guest Two", "04/05/2024", "06/05/2024"),
        row("Guest Three", "08/05/2024", "10/05/2024"),
    ]
    report = run(store, rows)

    assert report.success
    assert [r.guest_name for r in report.created] == ["Guest One", "Guest Three"]
    assert report.failed == [{"index": 1, "guestName": "Guest Two", "error": "constraint violation"}]
    assert report.error == "constraint violation"
    added = [entry["added"] for entry in report.results()["valid"]]
    assert added == [True, False, True]


def test_overlapping_rows_in_same_file_create_once(store):
    rows = [
        row("Guest One", "01/05/2024", "05/05/2024"),
        row("Guest One Again", "04/05/2024", "07/05/2024"),
    ]
    report = run(store, rows)

    assert report.summary.valid == 2
    assert len(report.created) == 1
    assert report.failed[0]["guestName"] == "Guest One Again"
    assert "created earlier in this import" in report.failed[0]["error"]


def test_concurrent_imports_of_same_stay_create_once(store):
    importer = ControlFileImporter(
        adapter=FakeAdapter([row("Guest One", "01/05/2024", "05/05/2024")]), store=store
    )
    start = threading.Barrier(4)
    reports = []

    def upload():
        start.wait()
        reports.append(importer.import_text(RawDocumentText(text=CONTROL_TEXT)))

    threads = [threading.Thread(target=upload) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(len(r.created) for r in reports) == 1
    assert sum(r.summary.duplicates for r in reports) == 3
    ids = [r.id for r in store.reservations]
    assert len(ids) == len(set(ids)) == 2


def test_unresolved_property_invalidates_every_row(store):
    text = "Controlo_Casa Inexistente\nCheck-in Check-out\n"
    report = run(store, [row("Guest One", "01/05/2024", "03/05/2024")], text=text)

    assert report.success
    assert report.resolved_property is None
    assert report.summary.invalid == 1
    assert "Property id missing" in report.outcomes[0].errors
    assert report.created == []


def test_created_reservations_are_audited(store, two_row_response):
    report = run(store, two_row_response)
    assert len(store.activities) == 1
    activity = store.activities[0]
    assert activity["type"] == "reservation_created"
    assert activity["entityId"] == report.created_ids[0]


def test_cancelled_import_creates_nothing(store, two_row_response):
    cancel = threading.Event()
    cancel.set()
    report = run(store, two_row_response, cancel_event=cancel)

    assert report.created == []
    assert report.failed[0]["error"] == "Import cancelled before this record"


def test_import_pdf_reads_text_layer(store, two_row_response):
    importer = ControlFileImporter(adapter=FakeAdapter(two_row_response), store=store)
    report = importer.import_pdf(make_pdf(CONTROL_TEXT), source_name="Controlo.pdf")

    assert report.is_control_file
    assert report.property_name == "Aroeira I"
    assert len(report.created) == 1


def test_import_pdf_rejects_unreadable_input(store):
    importer = ControlFileImporter(adapter=FakeAdapter("[]"), store=store)
    with pytest.raises(PdfReadError):
        importer.import_pdf(b"definitely not a pdf")
    with pytest.raises(PdfReadError):
        importer.import_pdf(make_pdf(""))


def test_report_is_json_serializable(store, two_row_response):
    json.dumps(run(store, two_row_response).to_dict())
