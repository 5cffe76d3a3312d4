"""
Transfer Receipt Generator

Renders a fixed single-page layout with Pillow and saves it as a PDF:

    <header title>
    ------------------------------------------
    <report title>
    Name: ...
    Amount: 50.00
    Date: 15/01/2024
    From account: ...
    To account: ...
    Payment ID: ...

Identical inputs give identical pages. The only thing that varies is
the PDF creation date, which is taken from generated_at.
"""

from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from typing import Optional, Union
from uuid import UUID

from PIL import Image, ImageDraw, ImageFont

from ledgerbook.config import ReceiptSettings, get_settings


MARGIN = 100
HEADER_FONT_SIZE = 48
TITLE_FONT_SIZE = 36
BODY_FONT_SIZE = 28
LINE_SPACING = 56


class ReceiptGenerator:
    """Builds PDF receipts for completed transfers."""

    def __init__(self, settings: Optional[ReceiptSettings] = None):
        self._settings = settings or get_settings().receipts

    def layout_lines(
        self,
        name: str,
        amount: Decimal,
        date: datetime,
        from_account_id: Union[UUID, str],
        to_account_id: Union[UUID, str],
        payment_id: str,
    ) -> list[tuple[str, str]]:
        """Labelled fields in the order they are printed."""
        return [
            ("Name", name),
            ("Amount", f"{Decimal(amount):.2f}"),
            ("Date", date.strftime(self._settings.date_format)),
            ("From account", str(from_account_id)),
            ("To account", str(to_account_id)),
            ("Payment ID", payment_id),
        ]

    def render(
        self,
        name: str,
        amount: Decimal,
        date: datetime,
        from_account_id: Union[UUID, str],
        to_account_id: Union[UUID, str],
        payment_id: str,
        generated_at: Optional[datetime] = None,
    ) -> bytes:
        """
        Render the receipt.

        Returns:
            PDF document bytes
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        width = self._settings.page_width
        page = Image.new("RGB", (width, self._settings.page_height), "white")
        draw = ImageDraw.Draw(page)

        y = MARGIN
        draw.text((MARGIN, y), self._settings.header_title, fill="black", font=_font(HEADER_FONT_SIZE))
        y += HEADER_FONT_SIZE + 32

        draw.line([(MARGIN, y), (width - MARGIN, y)], fill="black", width=3)
        y += 40

        draw.text((MARGIN, y), self._settings.report_title, fill="black", font=_font(TITLE_FONT_SIZE))
        y += TITLE_FONT_SIZE + 48

        body_font = _font(BODY_FONT_SIZE)
        for label, value in self.layout_lines(
            name, amount, date, from_account_id, to_account_id, payment_id
        ):
            draw.text((MARGIN, y), f"{label}: {value}", fill="black", font=body_font)
            y += LINE_SPACING

        buffer = BytesIO()
        page.save(
            buffer,
            format="PDF",
            resolution=self._settings.resolution,
            title=f"{self._settings.report_title} {payment_id}",
            author=self._settings.header_title,
            creationDate=generated_at.utctimetuple(),
            modDate=generated_at.utctimetuple(),
        )
        return buffer.getvalue()


def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)
