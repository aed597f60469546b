# app/utils/pdf_generators/invoice_pdf.py
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet

from app.schemas.orders.invoice_schemas import InvoiceData


def _money(value) -> str:
    return f"Rs. {value:.2f}"


def render_invoice_pdf(data: InvoiceData) -> bytes:
    """
    Render an invoice document to PDF bytes: header, GST line table,
    totals and the per-rate GST breakup.
    """
    styles = getSampleStyleSheet()
    story = []

    # -----------------------------
    # HEADER
    # -----------------------------
    story.append(Paragraph(f"<b>{escape(data.shop.name)}</b>", styles["Title"]))
    story.append(Paragraph(f"<b>TAX INVOICE #{data.invoice.id}</b>", styles["Heading2"]))
    story.append(Paragraph(f"Date: {data.invoice.date.strftime('%d-%m-%Y')}", styles["Normal"]))
    if data.invoice.customer_phone:
        story.append(Paragraph(f"Customer Phone: {escape(data.invoice.customer_phone)}", styles["Normal"]))
    if data.invoice.payment_method:
        story.append(Paragraph(f"Payment Method: {data.invoice.payment_method}", styles["Normal"]))
    story.append(Spacer(1, 15))

    # -----------------------------
    # LINE ITEMS
    # -----------------------------
    rows = [["Product", "HSN/SAC", "GST %", "Qty", "Unit (excl)", "Base", "GST", "Total"]]

    for item in data.items:
        rows.append([
            item.name,
            item.hsn_sac or "-",
            f"{item.gst_rate:.2f}",
            str(item.qty),
            _money(item.unit_price_excl),
            _money(item.line_base_amount),
            _money(item.line_gst_amount),
            _money(item.line_total),
        ])

    table = Table(rows, colWidths=[120, 55, 40, 30, 65, 65, 60, 65])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
    ]))
    story.append(table)
    story.append(Spacer(1, 20))

    # -----------------------------
    # TOTALS
    # -----------------------------
    story.append(Paragraph("<b>Summary:</b>", styles["Heading3"]))
    story.append(Paragraph(f"Taxable Amount: {_money(data.totals.base_amount)}", styles["Normal"]))
    story.append(Paragraph(f"GST: {_money(data.totals.gst_amount)}", styles["Normal"]))
    story.append(Paragraph(f"Discount: {_money(data.totals.discount)}", styles["Normal"]))
    story.append(Paragraph(f"<b>Grand Total: {_money(data.totals.grand_total)}</b>", styles["Heading2"]))
    story.append(Spacer(1, 10))

    if data.gst_breakup:
        breakup = [["GST %", "Amount"]] + [
            [f"{b.rate:.2f}", _money(b.amount)] for b in data.gst_breakup
        ]
        breakup_table = Table(breakup, colWidths=[60, 90])
        breakup_table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
        ]))
        story.append(breakup_table)
        story.append(Spacer(1, 20))

    if data.invoice.notes:
        story.append(Paragraph(f"Notes: {escape(data.invoice.notes)}", styles["Normal"]))

    # -----------------------------
    # FOOTER
    # -----------------------------
    story.append(Paragraph("Thank you for your business!", styles["Italic"]))

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    doc.build(story)
    return buffer.getvalue()
