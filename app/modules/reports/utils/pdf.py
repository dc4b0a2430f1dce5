"""
Exportación PDF del estado de cuenta
=====================================

Renderiza un StatementPayload con reportlab:
- Título, empresa y período
- Tabla de resumen
- Tabla de movimientos
- Tabla de facturas
- Pie de página con fecha de generación y numeración
"""
from io import BytesIO
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.enums import TA_CENTER
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from ..schemas import StatementPayload
from . import format_money, format_day, label_for, CATEGORY_LABELS, STATUS_LABELS
from ..services.ledger import to_local

HEADER_BACKGROUND = colors.HexColor('#1f2937')
ZEBRA_BACKGROUND = colors.HexColor('#f3f4f6')


def _table_style(numeric_from: int) -> TableStyle:
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BACKGROUND),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
        ('TOPPADDING', (0, 0), (-1, 0), 6),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, ZEBRA_BACKGROUND]),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (numeric_from, 1), (-1, -1), 'RIGHT'),
    ])


def _empty_row(columns: int) -> List[str]:
    return ["Sin registros"] + [""] * (columns - 1)


def render_statement_pdf(payload: StatementPayload) -> bytes:
    """
    Genera el PDF del estado de cuenta.

    Returns:
        Contenido del PDF
    """
    buffer = BytesIO()
    page_size = A4
    issued = to_local(payload.issued_at).strftime('%d/%m/%Y %H:%M')

    def on_page(canvas_obj, doc):
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 7)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawString(0.5*inch, 0.5*inch, f"Generado el {issued}")
        canvas_obj.drawCentredString(page_size[0] / 2.0, 0.5*inch, payload.company_name)
        canvas_obj.drawRightString(page_size[0] - 0.5*inch, 0.5*inch, f"Página {canvas_obj.getPageNumber()}")
        canvas_obj.restoreState()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=page_size,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=0.6*inch,
        bottomMargin=0.9*inch,
        title=f"Estado de cuenta {payload.company_name}"
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('StatementTitle', parent=styles['Title'], fontSize=16, alignment=TA_CENTER)
    subtitle_style = ParagraphStyle('StatementSubtitle', parent=styles['Normal'], fontSize=9, alignment=TA_CENTER)
    section_style = ParagraphStyle('StatementSection', parent=styles['Heading2'], fontSize=11, spaceBefore=10)
    cell_style = ParagraphStyle('StatementCell', parent=styles['Normal'], fontSize=8, leading=10)

    period = f"{format_day(payload.period.date_from)} al {format_day(payload.period.date_to)}"
    elements = [
        Paragraph(escape(payload.company_name), title_style),
        Paragraph("Estado de cuenta", subtitle_style),
        Paragraph(f"Período: {period}", subtitle_style),
        Spacer(1, 0.2*inch),
    ]

    # Resumen
    elements.append(Paragraph("Resumen", section_style))
    summary_data = [["Concepto", "Valor"]]
    summary_data += [[row.label, format_money(row.value)] for row in payload.summary_rows]
    summary_table = Table(summary_data, colWidths=[3*inch, 1.6*inch], hAlign='LEFT')
    summary_table.setStyle(_table_style(numeric_from=1))
    elements.append(summary_table)

    # Movimientos
    elements.append(Paragraph("Movimientos", section_style))
    movement_data = [["Fecha", "Categoría", "Descripción", "Total", "Subtotal", "IVA", "%"]]
    for row in payload.movements:
        movement_data.append([
            format_day(row.occurred_at),
            label_for(row.category, CATEGORY_LABELS),
            Paragraph(escape(row.description), cell_style),
            format_money(row.total),
            format_money(row.subtotal),
            format_money(row.iva),
            f"{row.iva_rate}%",
        ])
    if len(movement_data) == 1:
        movement_data.append(_empty_row(7))
    movement_table = Table(
        movement_data,
        colWidths=[0.8*inch, 1.0*inch, 2.4*inch, 0.9*inch, 0.9*inch, 0.7*inch, 0.4*inch],
        repeatRows=1
    )
    movement_table.setStyle(_table_style(numeric_from=3))
    elements.append(movement_table)

    # Facturas
    elements.append(Paragraph("Facturas", section_style))
    invoice_data = [["Fecha", "Número", "Cliente", "Total", "Subtotal", "IVA", "%", "Estado", "Saldo"]]
    for row in payload.invoices:
        invoice_data.append([
            format_day(row.issue_date),
            row.number,
            Paragraph(escape(row.client), cell_style),
            format_money(row.total),
            format_money(row.subtotal),
            format_money(row.iva),
            f"{row.iva_rate}%",
            label_for(row.status, STATUS_LABELS),
            format_money(row.remaining),
        ])
    if len(invoice_data) == 1:
        invoice_data.append(_empty_row(9))
    invoice_table = Table(
        invoice_data,
        colWidths=[0.7*inch, 0.7*inch, 1.5*inch, 0.8*inch, 0.8*inch, 0.6*inch, 0.4*inch, 0.7*inch, 0.8*inch],
        repeatRows=1
    )
    invoice_table.setStyle(_table_style(numeric_from=3))
    elements.append(invoice_table)

    doc.build(elements, onFirstPage=on_page, onLaterPages=on_page)
    return buffer.getvalue()
