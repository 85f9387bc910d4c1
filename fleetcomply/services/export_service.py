# fleetcomply/services/export_service.py
import io
from datetime import datetime

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment

EXPIRATION_COLUMNS = [
    ("license_plate", "Vehicle"),
    ("document_type", "Document Type"),
    ("expiration_date", "Expiration Date"),
    ("days_until_expiry", "Days Until Expiry"),
    ("status", "Status"),
]


def expiration_report_csv(report: dict) -> bytes:
    df = pd.DataFrame(report["rows"], columns=[key for key, _ in EXPIRATION_COLUMNS])
    # Undated documents would otherwise turn the whole column into floats
    df["days_until_expiry"] = df["days_until_expiry"].astype("Int64")
    df = df.rename(columns=dict(EXPIRATION_COLUMNS))
    return df.to_csv(index=False).encode("utf-8")


def spill_kit_report_csv(report: dict) -> bytes:
    """Sectioned CSV: summary, monthly trend, replacements, categories."""
    buffer = io.StringIO()
    period = report.get("period") or {}
    buffer.write("Spill Kit Expiration Report\n")
    buffer.write(f"Generated,{datetime.now().strftime('%Y-%m-%d %H:%M')}\n")
    if period:
        buffer.write(f"Period,{period['start']} - {period['end']}\n")
    buffer.write("\n")

    summary = report["summary"]
    pd.DataFrame([
        ("Total Inspections", summary["inspections"]),
        ("Expired Items", summary["expired"]),
        ("Expiring Soon", summary["expiring_soon"]),
        ("OK Items", summary["ok"]),
    ], columns=["Metric", "Value"]).to_csv(buffer, index=False)
    buffer.write("\n")

    pd.DataFrame(
        report["trend"], columns=["month", "inspections", "expired", "expiring_soon", "ok"]
    ).rename(columns={
        "month": "Month", "inspections": "Inspections", "expired": "Expired",
        "expiring_soon": "Expiring Soon", "ok": "OK",
    }).to_csv(buffer, index=False)
    buffer.write("\n")

    pd.DataFrame(report["replacements"], columns=["name", "count"]).rename(
        columns={"name": "Item", "count": "Times Expired"}
    ).to_csv(buffer, index=False)
    buffer.write("\n")

    pd.DataFrame(report["categories"], columns=["name", "value"]).rename(
        columns={"name": "Category", "value": "Items Tracked"}
    ).to_csv(buffer, index=False)

    return buffer.getvalue().encode("utf-8")


def maintenance_history_xlsx(history: dict, item_codes: dict) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Maintenance History"

    headers = ["Item", "Session", "Started", "Completed", "Technician", "Labor Hours", "Total Cost", "Summary"]
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    for s in history["sessions"]:
        ws.append([
            item_codes.get(s.item_id, s.item_id),
            s.session_number,
            s.started_at,
            s.completed_at,
            s.primary_technician or "",
            float(s.total_labor_hours or 0),
            float(s.total_cost or 0),
            s.session_summary or "",
        ])
        ws.cell(row=ws.max_row, column=7).number_format = "#,##0.00"

    stats = history["stats"]
    ws.append([])
    ws.append(["Total Sessions", stats["total_sessions"]])
    ws.append(["Total Cost", float(stats["total_cost"])])
    ws.append(["Average Duration (days)", stats["average_duration_days"]])

    for column, width in zip("ABCDEFGH", (14, 9, 20, 20, 18, 12, 12, 40)):
        ws.column_dimensions[column].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
