"""Excel export of invoice selections."""

from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

COLUMNS = (
    ('Invoice code', 15),
    ('Client', 20),
    ('File', 25),
    ('Distributor', 15),
    ('Amount', 18),
    ('Client commission', 18),
    ('Distributor commission', 18),
    ('Company commission', 18),
    ('Net profit', 18),
    ('Payment status', 15),
    ('Progress %', 12),
    ('Invoice date', 15),
)
CURRENCY_COLUMNS = (5, 6, 7, 8, 9)
NET_PROFIT_COLUMN = 9
CURRENCY_FORMAT = '#,##0.00'

HEADER_FILL = PatternFill(fill_type='solid', fgColor='4472C4')
STRIPE_FILL = PatternFill(fill_type='solid', fgColor='F2F2F2')
TOTAL_FILL = PatternFill(fill_type='solid', fgColor='FFFF00')
THIN = Side(style='thin')
BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)
CENTER = Alignment(horizontal='center', vertical='center')


def _row_for(invoice):
    return [
        invoice.invoice_code,
        invoice.client.full_name if invoice.client else '',
        invoice.file.file_name if invoice.file else '',
        invoice.assigned_distributor.username if invoice.assigned_distributor else '',
        invoice.total,
        invoice.client_commission,
        invoice.distributor_commission,
        invoice.company_commission,
        invoice.net_profit,
        invoice.payment_status_display,
        invoice.progress_percent,
        invoice.invoice_date,
    ]


def build_invoices_workbook(invoices, right_to_left=False) -> bytes:
    """
    Renders invoices as an .xlsx document: styled header, striped rows,
    net profit coloured green/red and a bold totals row.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = 'Invoices'
    ws.sheet_view.rightToLeft = right_to_left

    for idx, (title, width) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=1, column=idx, value=title)
        cell.font = Font(bold=True, color='FFFFFF')
        cell.fill = HEADER_FILL
        cell.alignment = CENTER
        cell.border = BORDER
        ws.column_dimensions[cell.column_letter].width = width
    ws.row_dimensions[1].height = 25

    totals = [0.0] * len(CURRENCY_COLUMNS)
    row_idx = 1
    for index, invoice in enumerate(invoices):
        row_idx += 1
        values = _row_for(invoice)
        for col_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.alignment = CENTER
            cell.border = BORDER
            if index % 2 == 0:
                cell.fill = STRIPE_FILL
            if col_idx in CURRENCY_COLUMNS:
                cell.number_format = CURRENCY_FORMAT

        net_cell = ws.cell(row=row_idx, column=NET_PROFIT_COLUMN)
        net_cell.font = Font(color='008000' if invoice.net_profit >= 0 else 'FF0000')

        for pos, col_idx in enumerate(CURRENCY_COLUMNS):
            totals[pos] += values[col_idx - 1] or 0

    # Totals one blank row below the data
    summary_idx = row_idx + 2
    ws.cell(row=summary_idx, column=4, value='Total:')
    for pos, col_idx in enumerate(CURRENCY_COLUMNS):
        ws.cell(row=summary_idx, column=col_idx, value=totals[pos]).number_format = CURRENCY_FORMAT
    for col_idx in range(1, len(COLUMNS) + 1):
        cell = ws.cell(row=summary_idx, column=col_idx)
        cell.font = Font(bold=True)
        cell.fill = TOTAL_FILL

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
