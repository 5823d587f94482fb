import sys
import types
from io import BytesIO

import pytest
from django.urls import reverse
from openpyxl import load_workbook

from library import reports, workflow
from library.exceptions import Forbidden, NotFound, ValidationError
from tests.helpers import make_overdue


@pytest.fixture
def activity(reader, librarian, make_book, borrowed_loan, return_request, loss_fee):
    make_book(title='No Longer at Ease')
    make_overdue(borrowed_loan, 2)
    workflow.confirm_return(librarian, return_request.pk, 'lost', fine_level_id=loss_fee.pk, note='Lost on bus')


def test_borrowings_report(librarian, activity):
    report = reports.build_report(librarian, 'borrowings', {})
    assert report.headers[0] == 'Loan'
    [row] = report.rows
    assert row[1] == 'Things Fall Apart'
    assert row[3] == 'Returned'
    assert ('Returned', 1) in report.summary


def test_borrowings_report_rejects_bad_dates(librarian, db):
    with pytest.raises(ValidationError):
        reports.build_report(librarian, 'borrowings', {'date_from': '01/02/2026'})


def test_fines_report_totals(librarian, activity):
    report = reports.build_report(librarian, 'fines', {})
    assert len(report.rows) == 2
    assert dict(report.summary)['Collected'] == 0


def test_fines_report_amounts_have_two_places(librarian, activity):
    report = reports.build_report(librarian, 'fines', {})
    assert str(dict(report.summary)['Collected']) == '0.00'
    assert all(len(str(value).split('.')[1]) == 2 for _, value in report.summary)


def test_books_report(librarian, activity):
    report = reports.build_report(librarian, 'books', {})
    assert report.headers[-1] == 'Times borrowed'
    rows = {row[1]: row for row in report.rows}
    assert rows['Things Fall Apart'][4] == 'Unavailable'
    assert rows['Things Fall Apart'][8] == 1
    assert rows['No Longer at Ease'][4] == 'Available'
    assert rows['No Longer at Ease'][8] == 0
    summary = dict(report.summary)
    assert summary['Titles'] == 2
    assert summary['Available'] == 1
    assert summary['Times borrowed'] == 1


def test_books_report_date_window(librarian, activity):
    report = reports.build_report(librarian, 'books', {'date_to': '2000-01-01'})
    assert dict(report.summary)['Times borrowed'] == 0
    assert len(report.rows) == 2


def test_lost_damaged_report(librarian, activity):
    report = reports.build_report(librarian, 'lost-damaged', {})
    assert [row[1] for row in report.rows] == ['Things Fall Apart']
    assert dict(report.summary)['Lost copies'] == 1


def test_reports_are_staff_only(reader):
    with pytest.raises(Forbidden):
        reports.build_report(reader, 'fines', {})


def test_unknown_report(librarian):
    with pytest.raises(NotFound):
        reports.build_report(librarian, 'popularity', {})


def test_csv_export(client, librarian, activity):
    client.force_login(librarian)
    response = client.get(reverse('librarian_report', args=['borrowings']), {'format': 'csv'})
    assert response.status_code == 200
    assert response['Content-Type'] == 'text/csv'
    assert 'attachment; filename="borrowings_report_' in response['Content-Disposition']
    content = response.content.decode()
    assert content.splitlines()[0].startswith('Loan,Book,Reader')
    assert 'Things Fall Apart' in content


def test_xlsx_export(client, librarian, activity):
    client.force_login(librarian)
    response = client.get(reverse('librarian_report', args=['lost-damaged']), {'format': 'xlsx'})
    assert response.status_code == 200

    ws = load_workbook(BytesIO(response.content)).active
    assert ws['A1'].value == 'LOST AND DAMAGED COPIES'
    assert ws['A4'].value == 'Book'
    assert ws['B5'].value == 'Things Fall Apart'


def test_pdf_export_renders_report_template(monkeypatch, librarian, activity):
    rendered = {}

    class FakeHTML:
        def __init__(self, string, base_url=None):
            rendered['html'] = string

        def write_pdf(self):
            return b'%PDF-1.7 fake'

    # avoid needing the native Pango stack in the test environment
    monkeypatch.setitem(sys.modules, 'weasyprint', types.SimpleNamespace(HTML=FakeHTML))

    report = reports.build_report(librarian, 'fines', {})
    response = reports.export(report, 'pdf')
    assert response['Content-Type'] == 'application/pdf'
    assert response.content.startswith(b'%PDF')
    assert 'Fines Report' in rendered['html']


def test_unsupported_format(client, librarian, db):
    client.force_login(librarian)
    response = client.get(reverse('librarian_report', args=['fines']), {'format': 'docx'})
    assert response.status_code == 400


def test_json_report(client, librarian, activity):
    client.force_login(librarian)
    response = client.get(reverse('librarian_report', args=['fines']))
    data = response.json()['data']
    assert data['title'] == 'Fines Report'
    assert len(data['rows']) == 2
