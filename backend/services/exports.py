from __future__ import annotations

import csv
import io
import json
import uuid
from datetime import date, datetime
from html import escape
from typing import Any

from models.student import Student
from services.fees import fee_balance


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def row_to_dict(obj) -> dict[str, Any]:
    """Plain column -> value mapping of an ORM row (JSON-safe scalars)."""

    return {c.name: _cell(getattr(obj, c.key)) for c in obj.__table__.columns}


def table_columns(model) -> list[str]:
    return [c.name for c in model.__table__.columns]


def rows_to_csv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    """Serialise rows as CSV.

    Fields holding commas, quotes, or newlines are quoted and embedded quotes
    doubled; None becomes an empty field; lists/dicts are written as JSON.
    """

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        out: dict[str, Any] = {}
        for col in columns:
            value = row.get(col)
            if value is None:
                out[col] = ""
            elif isinstance(value, (list, dict)):
                out[col] = json.dumps(value)
            else:
                out[col] = value
        writer.writerow(out)
    return buf.getvalue()


def parse_csv(text: str) -> list[dict[str, Any]]:
    """Parse CSV produced by :func:`rows_to_csv` (or any RFC 4180 file).

    Empty fields come back as None; blank lines are skipped.
    """

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: list[dict[str, Any]] = []
    for raw in reader:
        if not any((v or "").strip() for v in raw.values() if isinstance(v, str)):
            continue
        rows.append({(k or "").strip(): (v if v != "" else None) for k, v in raw.items() if k})
    return rows


def parse_json_rows(text: str, table: str) -> list[dict[str, Any]]:
    """Accept a list of rows, or a backup document keyed by table name."""

    data = json.loads(text)
    if isinstance(data, dict) and table in data:
        data = data[table]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ValueError("JSON import must be a list of objects or a backup containing the table")
    return data


def export_filename(prefix: str, ext: str, *, today: date | None = None) -> str:
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.{ext}"


def _money(value: float | None) -> str:
    return f"₹{float(value or 0):,.2f}"


def render_invoice_text(student: Student, *, institution: str, today: date | None = None) -> str:
    today = today or date.today()
    department = student.department.name if student.department is not None else "N/A"

    lines = [
        institution.upper(),
        "INVOICE",
        "",
        "Student Details:",
        f"Name: {student.name}",
        f"ID: {student.student_id}",
        f"College: {student.college or 'N/A'}",
        f"Department: {department}",
        f"Room: {student.room_number or 'Not Assigned'}",
        "",
        "Fee Details:",
    ]

    for fee in student.fees:
        lines.extend(
            [
                "",
                f"Academic Year: {fee.academic_year}",
                f"Fee Year: {fee.fee_year}",
                f"Amount: {_money(fee.amount)}",
                f"Paid Amount: {_money(fee.paid_amount)}",
                f"Balance: {_money(fee_balance(fee))}",
                f"Status: {fee.status}",
                f"Due Date: {fee.due_date.isoformat() if fee.due_date else 'N/A'}",
                f"Payment Date: {fee.payment_date.isoformat() if fee.payment_date else 'Not Paid'}",
                f"Payment Method: {fee.payment_method or 'N/A'}",
                f"Transaction ID: {fee.transaction_id or 'N/A'}",
            ]
        )
    if not student.fees:
        lines.append("No fee records.")

    total = sum(float(f.amount or 0) for f in student.fees)
    paid = sum(float(f.paid_amount or 0) for f in student.fees)
    lines.extend(
        [
            "",
            f"Total: {_money(total)}",
            f"Paid: {_money(paid)}",
            f"Balance: {_money(max(0.0, total - paid))}",
            "",
            f"Generated on: {today.isoformat()}",
        ]
    )
    return "\n".join(lines) + "\n"


_INVOICE_HTML = """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>Invoice - {student_id}</title>
<style>
body {{ font-family: Arial, Helvetica, sans-serif; color: #111827; margin: 32px; }}
table {{ width: 100%; border-collapse: collapse; margin-top: 16px; }}
th, td {{ border: 1px solid #e5e7eb; padding: 6px 8px; text-align: left; font-size: 13px; }}
th {{ background: #f3f4f6; }}
.muted {{ color: #6b7280; font-size: 12px; }}
.totals td {{ font-weight: bold; }}
@media print {{ body {{ margin: 0; }} }}
</style>
</head>
<body onload="window.print()">
<div><strong>{institution}</strong></div>
<div><strong>Invoice</strong></div>
<div class="muted">Invoice ID: INV-{student_id}-{today}</div>
<p>
Name: {name}<br>
ID: {student_id}<br>
College: {college}<br>
Department: {department}<br>
Room: {room}
</p>
<table>
<thead>
<tr><th>Academic Year</th><th>Fee Year</th><th>Amount</th><th>Paid</th><th>Balance</th><th>Status</th><th>Due Date</th><th>Payment Date</th></tr>
</thead>
<tbody>
{rows}
<tr class="totals"><td colspan="2">Total</td><td>{total}</td><td>{paid}</td><td>{balance}</td><td colspan="3"></td></tr>
</tbody>
</table>
<div class="muted" style="margin-top:24px">This invoice was generated by {institution}.</div>
</body>
</html>
"""


def render_invoice_html(student: Student, *, institution: str, today: date | None = None) -> str:
    today = today or date.today()
    department = student.department.name if student.department is not None else "N/A"

    rows = []
    for fee in student.fees:
        cells = [
            fee.academic_year,
            fee.fee_year,
            _money(fee.amount),
            _money(fee.paid_amount),
            _money(fee_balance(fee)),
            fee.status,
            fee.due_date.isoformat() if fee.due_date else "N/A",
            fee.payment_date.isoformat() if fee.payment_date else "Not Paid",
        ]
        rows.append("<tr>" + "".join(f"<td>{escape(str(c))}</td>" for c in cells) + "</tr>")

    total = sum(float(f.amount or 0) for f in student.fees)
    paid = sum(float(f.paid_amount or 0) for f in student.fees)
    return _INVOICE_HTML.format(
        institution=escape(institution),
        student_id=escape(student.student_id),
        today=today.isoformat(),
        name=escape(student.name),
        college=escape(student.college or "N/A"),
        department=escape(department),
        room=escape(student.room_number or "Not Assigned"),
        rows="\n".join(rows),
        total=escape(_money(total)),
        paid=escape(_money(paid)),
        balance=escape(_money(max(0.0, total - paid))),
    )
