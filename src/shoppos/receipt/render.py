"""
Receipt rendering

Builds the printable text of a sale receipt and draws it onto an image so it
can be saved or printed.
"""

from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from ..models import Customer, Sale, Settings
from ..utils import format_currency, format_date, format_time, parse_iso

RECEIPT_WIDTH = 40  # characters per line

PAYMENT_LABELS = {
    "cash": "Cash",
    "card": "Card",
    "qr": "QR Payment",
}


def _row(left: str, right: str, width: int = RECEIPT_WIDTH) -> str:
    space = max(1, width - len(left) - len(right))
    return f"{left}{' ' * space}{right}"


def receipt_lines(
    sale: Sale,
    settings: Settings,
    customer: Optional[Customer] = None,
) -> list[str]:
    """Receipt as a list of text lines.

    Lines starting with "**" are headings and are drawn in the bold font.
    """
    def money(amount: float) -> str:
        return format_currency(amount, settings.currency)

    when = parse_iso(sale.date).astimezone() if sale.date else None
    rule = "-" * RECEIPT_WIDTH

    lines = [f"**{settings.shop_name}"]
    if settings.shop_address:
        lines.append(settings.shop_address)
    if settings.shop_phone:
        lines.append(settings.shop_phone)
    lines.append(rule)
    lines.append(f"Receipt: {sale.receipt_number}")
    if when:
        lines.append(f"Date: {format_date(when)} {format_time(when)}")
    customer_name = customer.name if customer else sale.customer_name
    if customer_name:
        lines.append(f"Customer: {customer_name}")
    lines.append(rule)

    for item in sale.items:
        lines.append(item.name)
        lines.append(_row(f"  {item.quantity} x {money(item.price)}", money(item.line_total)))

    lines.append(rule)
    lines.append(_row("Subtotal", money(sale.subtotal)))
    if sale.tax:
        lines.append(_row(f"Tax ({settings.tax_rate * 100:g}%)", money(sale.tax)))
    lines.append(f"**{_row('TOTAL', money(sale.total), RECEIPT_WIDTH - 2)}")
    lines.append(_row("Payment", PAYMENT_LABELS.get(sale.payment_method, sale.payment_method)))
    if sale.payment_method == "cash" and sale.cash_received is not None:
        lines.append(_row("Cash", money(sale.cash_received)))
        lines.append(_row("Change", money(sale.change or 0)))
    if sale.payment_method == "qr" and settings.qr_payment_instructions:
        lines.append(settings.qr_payment_instructions)
    if sale.refunded:
        lines.append(rule)
        lines.append("**REFUNDED")
    lines.append(rule)
    lines.append("Thank you for your purchase!")
    return lines


def render_receipt_image(
    sale: Sale,
    settings: Settings,
    customer: Optional[Customer] = None,
    font_size: int = 18,
    width: int = 480,
    padding: int = 20,
    bg_color: str = "white",
    text_color: str = "black",
) -> Image.Image:
    """Draw the receipt lines onto a white image.

    Args:
        sale: the sale to print
        settings: shop settings (header, currency)
        font_size: body font size
        width: image width (px)
        padding: margin (px)

    Returns:
        PIL.Image
    """
    lines = receipt_lines(sale, settings, customer)
    font = _find_font(font_size)
    bold_font = _find_font(int(font_size * 1.2), bold=True)

    line_height = font_size + 6
    bold_line_height = int(font_size * 1.2) + 8

    total_height = padding * 2
    for line in lines:
        total_height += bold_line_height if line.startswith("**") else line_height

    img = Image.new("RGB", (width, total_height), bg_color)
    draw = ImageDraw.Draw(img)
    y = padding

    for line in lines:
        if line.startswith("**"):
            draw.text((padding, y), line[2:], fill=text_color, font=bold_font)
            y += bold_line_height
        else:
            draw.text((padding, y), line, fill=text_color, font=font)
            y += line_height

    return img


def save_receipt_image(
    sale: Sale,
    settings: Settings,
    output_dir: str = ".",
    prefix: str = "receipt",
    customer: Optional[Customer] = None,
    **render_kwargs,
) -> Path:
    """Save the receipt as <prefix>_<receiptNumber>.png

    Returns:
        path of the written file
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    img = render_receipt_image(sale, settings, customer, **render_kwargs)
    filepath = out / f"{prefix}_{sale.receipt_number}.png"
    img.save(str(filepath))
    return filepath


def _find_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    """Pick a monospace font so the columns line up."""
    if bold:
        font_paths = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationMono-Bold.ttf",
            "/System/Library/Fonts/Menlo.ttc",
        ]
    else:
        font_paths = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
            "/System/Library/Fonts/Menlo.ttc",
            "C:\\Windows\\Fonts\\consola.ttf",
        ]
    for path in font_paths:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default()
