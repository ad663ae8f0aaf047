"""Printable receipts"""

from .render import receipt_lines, render_receipt_image, save_receipt_image

__all__ = [
    "receipt_lines",
    "render_receipt_image",
    "save_receipt_image",
]
