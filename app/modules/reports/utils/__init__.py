"""
Utilities for Reports module

Provides CSV export functionality and the value formatting shared by the
CSV and PDF exports.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List

from fastapi import Response

from app.common.validators import coerce_amount, round_money
from ..schemas import StatementPayload
from ..services.ledger import to_local


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str] = None
) -> Response:
    """
    Create a CSV response from a list of dictionaries.

    Args:
        data: List of dictionaries with report data
        filename: Name for the CSV file
        headers: Optional mapping of field names to CSV headers

    Returns:
        FastAPI Response with CSV content
    """
    output = io.StringIO()
    fieldnames = list(headers.keys()) if headers else (list(data[0].keys()) if data else [])
    csv_headers = list(headers.values()) if headers else fieldnames

    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    if fieldnames:
        writer.writerow(dict(zip(fieldnames, csv_headers)))
    for row in data:
        writer.writerow({key: format_csv_value(value) for key, value in row.items() if key in fieldnames})

    csv_content = output.getvalue()
    output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    """
    Format a value for CSV export.

    Args:
        value: Value to format

    Returns:
        String representation suitable for CSV
    """
    if value is None:
        return ""
    elif isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return str(value.value)
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    elif isinstance(value, bool):
        return "Sí" if value else "No"
    else:
        return str(value)


def format_money(value: Any) -> str:
    """$1,234.50"""
    amount = round_money(coerce_amount(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_day(value: Any) -> str:
    if isinstance(value, datetime):
        return to_local(value).strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return ""


CATEGORY_LABELS = {
    "direct_sale": "Venta directa",
    "invoice_payment": "Pago de factura",
    "expense": "Gasto",
    "purchase": "Compra",
}

STATUS_LABELS = {
    "pending": "Pendiente",
    "partial": "Parcial",
    "paid": "Pagada",
}


def label_for(value: Any, labels: Dict[str, str]) -> str:
    key = value.value if isinstance(value, Enum) else str(value)
    return labels.get(key, key)


def prepare_movements_csv(payload: StatementPayload) -> List[Dict[str, Any]]:
    """Prepare statement movements for CSV export"""
    return [
        {
            "date": row.occurred_at,
            "category": label_for(row.category, CATEGORY_LABELS),
            "description": row.description,
            "total": row.total,
            "subtotal": row.subtotal,
            "iva": row.iva,
            "iva_rate": row.iva_rate,
        }
        for row in payload.movements
    ]


# CSV headers mapping for each report type
CSV_HEADERS = {
    "movements": {
        "date": "Fecha",
        "category": "Categoría",
        "description": "Descripción",
        "total": "Total",
        "subtotal": "Subtotal",
        "iva": "IVA",
        "iva_rate": "% IVA",
    },
}
