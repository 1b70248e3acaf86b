# backend/utils/pdf.py
import io
import logging
from pathlib import Path
from typing import Optional

from config import settings
from models.order import Order
from services.errors import NotificationError

logger = logging.getLogger(__name__)

# Fonts: DejaVu when shipped with the app, otherwise the built-in Helvetica
FONT_DIR = Path("assets/fonts")
FONT_REGULAR_PATH = FONT_DIR / "DejaVuSans.ttf"
FONT_BOLD_PATH = FONT_DIR / "DejaVuSans-Bold.ttf"

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"

_fonts_inited = False
def _init_fonts():
    """Registers DejaVu fonts in ReportLab if they are available."""
    global _fonts_inited, FONT_REGULAR_NAME, FONT_BOLD_NAME
    if _fonts_inited:
        return
    _fonts_inited = True
    if not FONT_REGULAR_PATH.exists():
        return

    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.ttfonts import TTFont

    try:
        pdfmetrics.registerFont(TTFont("DejaVuSans", str(FONT_REGULAR_PATH)))
        FONT_REGULAR_NAME = "DejaVuSans"
        if FONT_BOLD_PATH.exists():
            pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", str(FONT_BOLD_PATH)))
            FONT_BOLD_NAME = "DejaVuSans-Bold"
        else:
            FONT_BOLD_NAME = FONT_REGULAR_NAME
    except Exception as e:
        logger.warning(f"Font init failed, falling back to Helvetica: {e}")


def format_currency(value) -> str:
    return f"${float(value or 0):,.2f}"


class InvoiceRenderer:
    """Renders the purchase note (nota de compra) of a committed order as PDF bytes."""

    def __init__(self, company_name: Optional[str] = None, slogan: Optional[str] = None, currency: Optional[str] = None):
        self.company_name = company_name or settings.COMPANY_NAME
        self.slogan = slogan or settings.COMPANY_SLOGAN
        self.currency = currency or settings.CURRENCY

    def render(self, order: Order) -> bytes:
        try:
            return self._render(order)
        except Exception as e:
            logger.exception("Invoice rendering failed for order %s", getattr(order, "id", None))
            raise NotificationError(f"Could not render invoice: {e}", order_id=getattr(order, "id", None)) from e

    def _render(self, order: Order) -> bytes:
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.units import mm
        from reportlab.pdfgen import canvas

        _init_fonts()

        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        c.setTitle(f"Factura {order.id}")
        width, height = A4

        def draw_text(x, y, text, font=None, size=10, align="left", color=(0, 0, 0)):
            c.setFillColorRGB(*color)
            c.setFont(font or FONT_REGULAR_NAME, size)
            text_str = str(text) if text is not None else ""
            if align == "right":
                c.drawRightString(x, y, text_str)
            elif align == "center":
                c.drawCentredString(x, y, text_str)
            else:
                c.drawString(x, y, text_str)
            c.setFillColorRGB(0, 0, 0)

        # --- 1. Header: company on the left, order box on the right ---
        y = height - 20 * mm
        draw_text(20 * mm, y, self.company_name, font=FONT_BOLD_NAME, size=18)
        draw_text(20 * mm, y - 6 * mm, self.slogan, size=9, color=(0.4, 0.4, 0.4))

        c.setFillColorRGB(0.97, 0.97, 0.97)
        c.setStrokeColorRGB(0.8, 0.8, 0.8)
        c.rect(125 * mm, y - 17 * mm, 65 * mm, 22 * mm, fill=1, stroke=1)
        c.setStrokeColorRGB(0, 0, 0)
        draw_text(128 * mm, y, "FACTURA / NOTA DE COMPRA", font=FONT_BOLD_NAME, size=9)
        draw_text(128 * mm, y - 5 * mm, f"N° Orden: {order.id}", size=9)
        created = order.created_at.strftime("%d/%m/%Y") if order.created_at else ""
        draw_text(128 * mm, y - 10 * mm, f"Fecha: {created}", size=9)
        draw_text(128 * mm, y - 15 * mm, f"Método: {order.payment_method}", size=9)

        # --- 2. Customer block ---
        y -= 30 * mm
        draw_text(20 * mm, y, "Detalles del Cliente:", font=FONT_BOLD_NAME, size=12)
        y -= 6 * mm
        for line in (
            f"Nombre: {order.customer_name}",
            f"Dirección: {order.address}, {order.city}, {order.postal_code}",
            f"País: {order.country}",
            f"Teléfono: {order.phone}",
        ):
            draw_text(20 * mm, y, line)
            y -= 5 * mm

        y -= 3 * mm
        c.setLineWidth(0.5)
        c.line(20 * mm, y, 190 * mm, y)
        y -= 8 * mm

        # --- 3. Line table ---
        def table_header(current_y):
            c.setFillColorRGB(0.95, 0.95, 0.95)
            c.rect(20 * mm, current_y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
            c.setFillColorRGB(0, 0, 0)
            c.setFont(FONT_BOLD_NAME, 9)
            c.drawString(22 * mm, current_y, "Producto")
            c.drawRightString(125 * mm, current_y, "Precio Unitario")
            c.drawRightString(150 * mm, current_y, "Cantidad")
            c.drawRightString(185 * mm, current_y, "Subtotal")
            return current_y - 8 * mm

        draw_text(20 * mm, y, "DETALLES DE LA ORDEN", font=FONT_BOLD_NAME, size=11)
        y = table_header(y - 8 * mm)

        c.setFont(FONT_REGULAR_NAME, 9)
        for it in order.items:
            c.drawString(22 * mm, y, str(it.product_name)[:55])
            c.drawRightString(125 * mm, y, format_currency(it.unit_price))
            c.drawRightString(150 * mm, y, str(it.quantity))
            c.drawRightString(185 * mm, y, format_currency(it.line_subtotal))
            c.setLineWidth(0.1)
            c.line(20 * mm, y - 2 * mm, 190 * mm, y - 2 * mm)
            y -= 6 * mm

            # New page with repeated header
            if y < 60 * mm:
                c.showPage()
                y = table_header(height - 20 * mm)
                c.setFont(FONT_REGULAR_NAME, 9)

        # --- 4. Totals box ---
        rows = [
            ("Subtotal:", format_currency(order.subtotal), False),
            ("Gastos de Envío:", format_currency(order.shipping_cost), False),
            ("Impuestos (IVA):", format_currency(order.tax), False),
            ("Cupón Descuento:", "-" + format_currency(order.discount_amount), False),
            (f"TOTAL PAGADO ({self.currency}):", format_currency(order.total), True),
        ]
        y -= 4 * mm
        box_height = len(rows) * 6 * mm + 4 * mm
        c.setFillColorRGB(0.93, 0.93, 0.93)
        c.rect(110 * mm, y - box_height + 4 * mm, 80 * mm, box_height, fill=1, stroke=1)
        c.setFillColorRGB(0, 0, 0)
        y -= 1 * mm
        for label, value, bold in rows:
            font = FONT_BOLD_NAME if bold else FONT_REGULAR_NAME
            size = 11 if bold else 9
            draw_text(113 * mm, y, label, font=font, size=size)
            draw_text(187 * mm, y, value, font=font, size=size, align="right")
            y -= 6 * mm

        # --- 5. Footer ---
        draw_text(width / 2, 20 * mm, "Gracias por tu compra", font=FONT_BOLD_NAME, size=11, align="center")
        draw_text(width / 2, 15 * mm, self.company_name, size=9, align="center", color=(0.4, 0.4, 0.4))

        c.showPage()
        c.save()
        return buffer.getvalue()


def get_invoice_renderer() -> InvoiceRenderer:
    return InvoiceRenderer()
