"""
Report Module - Excel Export
=============================
Renders a daily sales report (as returned by report_service.daily_sales_report)
into an .xlsx workbook for the accountant.
"""

import io

import openpyxl
from openpyxl.styles import Font

from config.settings import BUSINESS_NAME, CURRENCY_SYMBOL


def _float(value):
    # openpyxl writes Decimals as numbers only after conversion
    return float(value) if value is not None else 0.0


def export_daily_sales_xlsx(report: dict) -> bytes:
    wb = openpyxl.Workbook()
    bold = Font(bold=True)

    # Summary
    ws = wb.active
    ws.title = "Summary"
    ws.append([BUSINESS_NAME])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([f"Daily sales report - {report['date']}"])
    ws.append([])
    ws.append(["Bills", report["bill_count"]])
    ws.append([f"Total sales ({CURRENCY_SYMBOL})", _float(report["total_sales"])])
    ws.append([f"Average bill ({CURRENCY_SYMBOL})", _float(report["average_bill_value"])])
    ws.append([f"Received ({CURRENCY_SYMBOL})", _float(report.get("total_received"))])
    for row in ws.iter_rows(min_row=4, max_row=7, max_col=1):
        row[0].font = bold
    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 16

    # Payment methods
    ws = wb.create_sheet("Payments")
    ws.append(["Method", "Amount"])
    for cell in ws[1]:
        cell.font = bold
    for method, amount in report["payment_methods"].items():
        ws.append([method, _float(amount)])
    ws.column_dimensions["A"].width = 16

    # Top products
    ws = wb.create_sheet("Top Products")
    ws.append(["#", "Product", "SKU", "Quantity", "Amount"])
    for cell in ws[1]:
        cell.font = bold
    for rank, p in enumerate(report["top_products"], start=1):
        ws.append([rank, p["product_name"], p["sku"], _float(p["quantity"]), _float(p["total_amount"])])
    ws.column_dimensions["B"].width = 32

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
