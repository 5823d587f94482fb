"""
Staff reports and their CSV / Excel / PDF exports.

Each report builder returns a Report (title, headers, rows, summary);
the exporters only know about that shape.
"""

import csv
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List

from django.db.models import Count, Q, Sum
from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from library import guard
from library.exceptions import NotFound, ValidationError
from library.guard import Action
from library.models import (
    Book,
    Fine,
    FINE_PAID,
    FINE_STATE_CHOICES,
    Loan,
    LOAN_BORROWED,
    LOAN_RETURN_PENDING,
    LOAN_RETURNED,
    LOAN_STATE_CHOICES,
)
from library.serializers import CENTS

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'xlsx', 'pdf')


@dataclass
class Report:
    name: str
    title: str
    headers: List[str]
    rows: List[list] = field(default_factory=list)
    summary: List[tuple] = field(default_factory=list)
    filters: dict = field(default_factory=dict)


def _amount(value):
    return Decimal(value or 0).quantize(CENTS)


def _parse_date(value, field_name):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Dates must use the YYYY-MM-DD format.',
                              errors={field_name: ['Use YYYY-MM-DD.']})


def borrowings_report(params):
    date_from = _parse_date(params.get('date_from'), 'date_from')
    date_to = _parse_date(params.get('date_to'), 'date_to')
    state = params.get('state') or ''

    loans = Loan.objects.select_related('book', 'reader').order_by('created_at')
    if date_from:
        loans = loans.filter(created_at__date__gte=date_from)
    if date_to:
        loans = loans.filter(created_at__date__lte=date_to)
    if state:
        if state not in dict(LOAN_STATE_CHOICES):
            raise ValidationError('Unknown loan state.', errors={'state': ['Unknown loan state.']})
        loans = loans.filter(state=state)

    today = timezone.localdate()
    rows = [
        [
            loan.pk,
            loan.book.title,
            loan.reader.get_display_name(),
            loan.get_state_display(),
            loan.borrow_date,
            loan.due_date,
            loan.return_date,
            loan.days_overdue(today),
        ]
        for loan in loans
    ]

    counts = dict(loans.order_by().values_list('state').annotate(n=Count('id')))
    summary = [('Total loans', len(rows))]
    summary += [(label, counts.get(value, 0)) for value, label in LOAN_STATE_CHOICES]

    return Report(
        name='borrowings',
        title='Borrowings Report',
        headers=['Loan', 'Book', 'Reader', 'State', 'Borrowed', 'Due', 'Returned', 'Days overdue'],
        rows=rows,
        summary=summary,
        filters={'date_from': date_from, 'date_to': date_to, 'state': state},
    )


def fines_report(params):
    state = params.get('state') or ''
    fines = Fine.objects.select_related('loan__book', 'reader', 'fine_level').order_by('fine_date', 'pk')
    totals = {
        row['state']: (row['n'], row['total'])
        for row in Fine.objects.order_by().values('state').annotate(n=Count('id'), total=Sum('amount'))
    }
    if state:
        if state not in dict(FINE_STATE_CHOICES):
            raise ValidationError('Unknown fine state.', errors={'state': ['Unknown fine state.']})
        fines = fines.filter(state=state)

    rows = [
        [
            fine.pk,
            fine.reader.get_display_name(),
            fine.loan.book.title,
            fine.get_reason_code_display(),
            fine.fine_level.name,
            fine.amount,
            fine.get_state_display(),
            fine.fine_date,
        ]
        for fine in fines
    ]

    summary = []
    for value, label in FINE_STATE_CHOICES:
        count, total = totals.get(value, (0, 0))
        summary.append((f'{label} ({count})', _amount(total)))
    summary.append(('Collected', _amount(totals.get(FINE_PAID, (0, 0))[1])))

    return Report(
        name='fines',
        title='Fines Report',
        headers=['Fine', 'Reader', 'Book', 'Reason', 'Fine level', 'Amount', 'State', 'Date'],
        rows=rows,
        summary=summary,
        filters={'state': state},
    )


def _book_status(book):
    if book.available_quantity > 0:
        return 'Available'
    if book.borrowed_quantity > 0:
        return 'On loan'
    return 'Unavailable'


def books_report(params):
    """Catalog overview with how often each title went out in the window."""
    date_from = _parse_date(params.get('date_from'), 'date_from')
    date_to = _parse_date(params.get('date_to'), 'date_to')

    lent = Q(loans__state__in=(LOAN_BORROWED, LOAN_RETURN_PENDING, LOAN_RETURNED))
    if date_from:
        lent &= Q(loans__borrow_date__gte=date_from)
    if date_to:
        lent &= Q(loans__borrow_date__lte=date_to)

    books = (
        Book.objects.select_related('category')
        .annotate(borrow_count=Count('loans', filter=lent))
        .order_by('title', 'pk')
    )
    rows = [
        [
            book.pk,
            book.title,
            book.author,
            book.category.name if book.category else '',
            _book_status(book),
            book.total_quantity,
            book.available_quantity,
            book.borrowed_quantity,
            book.borrow_count,
        ]
        for book in books
    ]

    statuses = [row[4] for row in rows]
    summary = [('Titles', len(rows))]
    summary += [(status, statuses.count(status)) for status in ('Available', 'On loan', 'Unavailable')]
    summary.append(('Times borrowed', sum(row[8] for row in rows)))

    return Report(
        name='books',
        title='Books Report',
        headers=['Book', 'Title', 'Author', 'Category', 'Status', 'Total copies',
                 'Available', 'Borrowed', 'Times borrowed'],
        rows=rows,
        summary=summary,
        filters={'date_from': date_from, 'date_to': date_to},
    )


def lost_damaged_report(params):
    books = (
        Book.objects.filter(Q(lost_quantity__gt=0) | Q(damaged_quantity__gt=0))
        .order_by('title')
    )
    rows = [
        [book.pk, book.title, book.author, book.total_quantity, book.lost_quantity, book.damaged_quantity]
        for book in books
    ]
    totals = books.aggregate(lost=Sum('lost_quantity'), damaged=Sum('damaged_quantity'))
    return Report(
        name='lost-damaged',
        title='Lost and Damaged Copies',
        headers=['Book', 'Title', 'Author', 'Total copies', 'Lost', 'Damaged'],
        rows=rows,
        summary=[('Lost copies', totals['lost'] or 0), ('Damaged copies', totals['damaged'] or 0)],
    )


REPORTS = {
    'books': books_report,
    'borrowings': borrowings_report,
    'fines': fines_report,
    'lost-damaged': lost_damaged_report,
}


def build_report(actor, name, params):
    guard.check(Action.VIEW_REPORTS, actor)
    builder = REPORTS.get(name)
    if builder is None:
        raise NotFound(f'Unknown report: {name}.')
    return builder(params)


def _cell(value):
    if value is None:
        return ''
    return value


def _filename(report, extension):
    return f'{report.name}_report_{timezone.now().strftime("%Y%m%d_%H%M%S")}.{extension}'


def export_csv(report):
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{_filename(report, "csv")}"'

    writer = csv.writer(response)
    writer.writerow(report.headers)
    for row in report.rows:
        writer.writerow([_cell(value) for value in row])
    writer.writerow([])
    for label, value in report.summary:
        writer.writerow([label, value])
    return response


def export_xlsx(report):
    wb = Workbook()
    ws = wb.active
    ws.title = report.title[:31]

    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    center_align = Alignment(horizontal="center", vertical="center", wrap_text=True)

    last_column = get_column_letter(len(report.headers))
    ws.merge_cells(f'A1:{last_column}1')
    ws['A1'] = report.title.upper()
    ws['A1'].font = Font(bold=True, size=14)
    ws['A1'].alignment = center_align
    ws['A2'] = f"Generated: {timezone.now().strftime('%Y-%m-%d %H:%M')}"

    header_row = 4
    for col_num, header in enumerate(report.headers, start=1):
        cell = ws.cell(row=header_row, column=col_num, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        cell.alignment = center_align
        ws.column_dimensions[get_column_letter(col_num)].width = 18

    for row_num, row in enumerate(report.rows, start=header_row + 1):
        for col_num, value in enumerate(row, start=1):
            cell = ws.cell(row=row_num, column=col_num, value=_cell(value))
            cell.border = thin_border

    summary_row = header_row + len(report.rows) + 2
    ws.cell(row=summary_row, column=1, value="Summary:").font = Font(bold=True)
    for offset, (label, value) in enumerate(report.summary, start=1):
        ws.cell(row=summary_row + offset, column=1, value=label)
        ws.cell(row=summary_row + offset, column=2, value=value).font = Font(bold=True)

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="{_filename(report, "xlsx")}"'
    wb.save(response)
    return response


def export_pdf(report, request=None):
    # WeasyPrint needs native Pango libraries; load it only when a PDF is asked for
    from weasyprint import HTML

    context = {
        'report': report,
        'export_date': timezone.now(),
        'request': request,
    }
    html_string = render_to_string('library/reports/report_pdf.html', context)
    base_url = request.build_absolute_uri() if request is not None else None
    pdf_file = HTML(string=html_string, base_url=base_url).write_pdf()

    response = HttpResponse(pdf_file, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{_filename(report, "pdf")}"'
    return response


def export(report, export_format, request=None):
    if export_format == 'csv':
        response = export_csv(report)
    elif export_format == 'xlsx':
        response = export_xlsx(report)
    elif export_format == 'pdf':
        response = export_pdf(report, request)
    else:
        raise ValidationError(
            f'Unsupported export format: {export_format}.',
            errors={'format': [f'Choose one of {", ".join(EXPORT_FORMATS)}.']},
        )
    logger.info('Exported %s report as %s (%s rows)', report.name, export_format, len(report.rows))
    return response
