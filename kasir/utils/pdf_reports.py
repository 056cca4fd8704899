"""
PDF generation for the sales report and order receipts.
"""
import io
from xml.sax.saxutils import escape
from datetime import datetime
from typing import List, Dict, Any
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.enums import TA_CENTER, TA_RIGHT

from kasir.config import settings


def format_rupiah(value) -> str:
    """12500 -> 'Rp 12.500'"""
    return "Rp " + f"{float(value or 0):,.0f}".replace(",", ".")


# name, parent, overrides
CUSTOM_STYLES = (
    ("ReportTitle", "Heading1", {"fontSize": 20, "alignment": TA_CENTER, "spaceAfter": 12,
                                 "textColor": colors.HexColor("#2c3e50")}),
    ("ReportSubtitle", "Heading2", {"fontSize": 11, "alignment": TA_CENTER, "spaceAfter": 16,
                                    "textColor": colors.HexColor("#7f8c8d")}),
    ("SectionHeader", "Heading2", {"fontSize": 13, "spaceBefore": 16, "spaceAfter": 8,
                                   "textColor": colors.HexColor("#2980b9")}),
    ("NormalText", "Normal", {"fontSize": 10, "leading": 14, "spaceAfter": 6}),
    ("Footer", "Normal", {"fontSize": 8, "alignment": TA_CENTER, "textColor": colors.gray}),
)


class PDFReportGenerator:
    """Sales report (A4) and receipt (narrow roll) documents."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        for name, parent, overrides in CUSTOM_STYLES:
            self.styles.add(ParagraphStyle(name=name, parent=self.styles[parent], **overrides))

    @staticmethod
    def _table(data: List[List[Any]], col_widths: List[float], header_color: str) -> Table:
        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('TEXTCOLOR', (0, 1), (-1, -1), colors.black),
            ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
        ]))
        return table

    def generate_sales_report(
        self,
        summary: Dict[str, Any],
        daily_rows: List[Dict[str, Any]],
        products: List[Dict[str, Any]],
        payments: List[Dict[str, Any]],
        period_label: str,
    ) -> bytes:
        """
        Sales report for a date range.

        Args:
            summary: output of get_sales_summary()
            daily_rows: output of get_daily_sales_report()
            products: output of get_product_sales_report()
            payments: output of get_payment_method_report()
            period_label: human-readable range, e.g. "01/05/2024 - 07/05/2024"

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=48,
            leftMargin=48,
            topMargin=48,
            bottomMargin=48
        )

        story = []

        story.append(Paragraph(f"Laporan Penjualan {escape(settings.STORE_NAME)}", self.styles['ReportTitle']))
        story.append(Paragraph(f"Periode: {period_label}", self.styles['ReportSubtitle']))

        comparison = summary.get('period_comparison', {})
        summary_text = f"""
        <b>Ringkasan:</b><br/>
        Total Pendapatan: {format_rupiah(summary.get('total_revenue'))}
        ({comparison.get('revenue_change', 0):+.1f}%)<br/>
        Total Transaksi: {summary.get('total_transactions', 0)}
        ({comparison.get('transaction_change', 0):+.1f}%)<br/>
        Total Keuntungan: {format_rupiah(summary.get('total_profit'))}
        ({comparison.get('profit_change', 0):+.1f}%)<br/>
        Rata-rata per Transaksi: {format_rupiah(summary.get('average_order_value'))}<br/>
        Margin Keuntungan: {summary.get('profit_margin', 0):.1f}%<br/>
        """
        story.append(Paragraph(summary_text, self.styles['NormalText']))

        story.append(Paragraph("Penjualan Harian", self.styles['SectionHeader']))
        table_data = [['Tanggal', 'Transaksi', 'Pendapatan', 'Keuntungan', 'Produk Terlaris']]
        for row in daily_rows:
            table_data.append([
                row['date'],
                str(row['transactions']),
                format_rupiah(row['revenue']),
                format_rupiah(row['profit']),
                f"{row['top_product']} ({row['top_product_quantity']})",
            ])
        story.append(self._table(
            table_data, [1.1*inch, 0.9*inch, 1.4*inch, 1.4*inch, 2.0*inch], '#27ae60'
        ))

        if products:
            story.append(Paragraph("Produk Terlaris", self.styles['SectionHeader']))
            product_data = [['Produk', 'Kategori', 'Terjual', 'Pendapatan', 'Keuntungan']]
            for p in products:
                product_data.append([
                    p['name'],
                    p.get('category') or '-',
                    str(p['quantity_sold']),
                    format_rupiah(p['revenue']),
                    format_rupiah(p['profit']),
                ])
            story.append(self._table(
                product_data, [2.0*inch, 1.2*inch, 0.8*inch, 1.4*inch, 1.4*inch], '#3498db'
            ))

        if payments:
            story.append(Paragraph("Metode Pembayaran", self.styles['SectionHeader']))
            payment_data = [['Metode', 'Jumlah', 'Total', 'Persentase']]
            for p in payments:
                payment_data.append([
                    p['method'],
                    str(p['count']),
                    format_rupiah(p['amount']),
                    f"{p['percentage']:.1f}%",
                ])
            story.append(self._table(
                payment_data, [2.0*inch, 1.0*inch, 1.6*inch, 1.2*inch], '#2c3e50'
            ))

        story.append(Spacer(1, 24))
        story.append(Paragraph(
            f"Dibuat: {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}",
            self.styles['Footer']
        ))

        doc.build(story)

        buffer.seek(0)
        return buffer.getvalue()

    def generate_receipt(self, order: Dict[str, Any]) -> bytes:
        """
        Customer receipt for one order.

        Args:
            order: output of serialize_order()

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()

        # Thermal roll width; height grows with the number of lines
        height = (5 + 0.35 * len(order.get('items', []))) * inch
        doc = SimpleDocTemplate(
            buffer,
            pagesize=(3.2*inch, height),
            rightMargin=10,
            leftMargin=10,
            topMargin=10,
            bottomMargin=10
        )

        story = []

        story.append(Paragraph(escape(settings.STORE_NAME.upper()),
                               ParagraphStyle(name='ReceiptHeader',
                                              fontSize=14,
                                              alignment=TA_CENTER,
                                              textColor=colors.HexColor('#2c3e50'),
                                              spaceAfter=6)))

        info_style = ParagraphStyle(name='ReceiptInfo', fontSize=8, leading=10)
        created_at = order.get('created_at') or datetime.now().isoformat()
        info_text = f"""
        <b>No:</b> {order.get('order_number', '')}<br/>
        <b>Tanggal:</b> {created_at[:16].replace('T', ' ')}<br/>
        <b>Kasir:</b> {escape(order.get('cashier_name') or '-')}<br/>
        """
        if order.get('customer_name'):
            info_text += f"<b>Pelanggan:</b> {escape(order['customer_name'])}<br/>"
        story.append(Paragraph(info_text, info_style))
        story.append(Spacer(1, 6))

        line_style = ParagraphStyle(name='Line', fontSize=8)
        story.append(Paragraph("-" * 48, line_style))

        item_rows = []
        for item in order.get('items', []):
            item_rows.append([
                f"{item.get('product_name') or ''}\n{item['quantity']} x {format_rupiah(item['price'])}",
                format_rupiah(item['subtotal']),
            ])
        if item_rows:
            items_table = Table(item_rows, colWidths=[1.9*inch, 1.0*inch])
            items_table.setStyle(TableStyle([
                ('FONTSIZE', (0, 0), (-1, -1), 8),
                ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
                ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ]))
            story.append(items_table)

        story.append(Paragraph("-" * 48, line_style))

        totals = [
            ['Subtotal', format_rupiah(order.get('subtotal'))],
            ['Pajak (10%)', format_rupiah(order.get('tax'))],
        ]
        if order.get('discount'):
            totals.append(['Diskon', "-" + format_rupiah(order.get('discount'))])
        totals.append(['TOTAL', format_rupiah(order.get('total'))])
        totals_table = Table(totals, colWidths=[1.9*inch, 1.0*inch])
        totals_table.setStyle(TableStyle([
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ]))
        story.append(totals_table)

        method_style = ParagraphStyle(name='Method', fontSize=8, alignment=TA_RIGHT)
        story.append(Paragraph(f"Pembayaran: {order.get('payment_method', '')}", method_style))
        story.append(Spacer(1, 12))

        footer_style = ParagraphStyle(name='FooterNote', fontSize=8, alignment=TA_CENTER)
        story.append(Paragraph("Terima kasih atas kunjungan Anda!", footer_style))

        doc.build(story)

        buffer.seek(0)
        return buffer.getvalue()


pdf_generator = PDFReportGenerator()
