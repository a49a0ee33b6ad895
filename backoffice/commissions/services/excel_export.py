"""Excel export of a commission rollup (openpyxl)."""
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment

HEADERS = ['Branch', 'Stylist', 'Client', 'First Visit', 'Service', 'Date', 'Price', 'Commission']
MONEY_FORMAT = '#,##0.00'


def build_commission_workbook(results, start_date, end_date):
    """Return the .xlsx bytes: one line per commissioned service plus subtotals."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Commissions'

    header_fill = PatternFill(start_color='1F2937', end_color='1F2937', fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF')
    bold = Font(bold=True)

    ws.cell(row=1, column=1, value=f'First-visit commissions {start_date} to {end_date}').font = bold
    for col, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=3, column=col, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center')

    row = 4
    for branch in results.get('branches', []):
        for stylist in branch['stylists']:
            for client in stylist['clients']:
                for service in client['services']:
                    ws.append([
                        branch['branchName'], stylist['staffName'], client['clientName'],
                        client['firstVisitDate'], service['serviceName'], service['appointmentDate'],
                        service['price'], service['commission'],
                    ])
                    row += 1
            ws.cell(row=row, column=2, value=f"{stylist['staffName']} total").font = bold
            ws.cell(row=row, column=8, value=stylist['stylistTotal']).font = bold
            row += 1
        ws.cell(row=row, column=1, value=f"{branch['branchName']} total").font = bold
        ws.cell(row=row, column=8, value=branch['branchTotal']).font = bold
        row += 1

    row += 1
    ws.cell(row=row, column=1, value='New clients').font = bold
    ws.cell(row=row, column=2, value=results.get('totalNewClients', 0))
    ws.cell(row=row, column=7, value='Total').font = bold
    ws.cell(row=row, column=8, value=results.get('totalCommission', 0)).font = bold

    for col_cells in ws.iter_cols(min_col=7, max_col=8, min_row=4):
        for cell in col_cells:
            cell.number_format = MONEY_FORMAT

    for col in ws.iter_cols(min_row=3):
        width = max((len(str(c.value)) for c in col if c.value is not None), default=8)
        ws.column_dimensions[col[0].column_letter].width = min(width + 2, 40)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
