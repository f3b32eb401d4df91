# services/pdf_renderer.py
"""
Mandate Document Renderer - produces the signed direct debit form as PDF.

The primary strategy is template overlay: the text and images for one
mandate are drawn with reportlab onto a transparent page at coordinates
taken from a versioned position table, and that page is merged onto the
first page of the fixed template PDF with pypdf.

ScratchMandateRenderer is the documented fallback mode
(MANDATE_RENDERER=scratch). It composes a plain document from scratch and
shares no layout code with the template path.

Both renderers are stateless: the same mandate always yields the same
visible content. Protected fields are decrypted for the duration of one
render call only.
"""
import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from models import DirectDebitMandate
from .encryption import FieldCipher
from .errors import RenderTimeoutError, TemplateMismatchError, TemplateMissingError
from .signatures import SignatureStore

logger = logging.getLogger(__name__)

SIGNATURE_LINE = "__________________________"
SIGNATURE_NOT_FOUND = "[Signature Image Not Found]"
DATE_FORMAT = "%d/%m/%Y"
PAGE_SIZE_TOLERANCE = 1.0  # points


def register_font(path: str, name: Optional[str] = None) -> str:
     """
     Register a TrueType font with reportlab once and return its name.

     The name defaults to the file name without extension.

     Raises:
          TemplateMissingError: the font file does not exist.
     """
     path = str(path)
     name = name or os.path.splitext(os.path.basename(path))[0]
     if name in pdfmetrics.getRegisteredFontNames():
          return name
     if not os.path.isfile(path):
          raise TemplateMissingError(f"Font file not found at: {path}")
     pdfmetrics.registerFont(TTFont(name, path))
     return name


def _format_date(value) -> Optional[str]:
     return value.strftime(DATE_FORMAT) if value else None


def _present(value) -> bool:
     return value is not None and str(value).strip() != ""


@dataclass
class Box:
     x: float
     y: float
     width: float
     height: float


@dataclass
class TemplateLayout:
     """
     One version of the position table.

     Coordinates are PDF points with the origin at the bottom-left of the
     template's first page.
     """
     version: str
     template_path: str
     page_size: Tuple[float, float]
     font: str = "Helvetica"
     font_file: Optional[str] = None
     font_size: float = 10
     logo: Optional[Box] = None
     fields: Dict[str, Tuple[float, float]] = field(default_factory=dict)
     accounts: List[Dict[str, Tuple[float, float]]] = field(default_factory=list)
     signature: Optional[Box] = None
     signed_date: Optional[Tuple[float, float]] = None
     ip_address: Optional[Tuple[float, float]] = None

     @classmethod
     def load(cls, positions_file: str, version: str) -> "TemplateLayout":
          """
          Read `version` from a position table JSON file.

          The template and font paths in the table are resolved relative to
          the JSON file's directory. Without a font_file, `font` must name
          one of the PDF base fonts, which only cover WinAnsi (Western European) characters.
          """
          with open(positions_file, "r", encoding="utf-8") as f:
               table = json.load(f)
          if version not in table:
               raise TemplateMismatchError(f"Template version '{version}' is not in {positions_file}")

          entry = table[version]
          base_dir = os.path.dirname(os.path.abspath(positions_file))

          def point(raw):
               return (float(raw["x"]), float(raw["y"])) if raw else None

          def box(raw):
               return Box(float(raw["x"]), float(raw["y"]), float(raw["width"]), float(raw["height"])) if raw else None

          return cls(
               version=version,
               template_path=os.path.join(base_dir, entry["template"]),
               page_size=(float(entry["page_size"][0]), float(entry["page_size"][1])),
               font=entry.get("font", "Helvetica"),
               font_file=os.path.join(base_dir, entry["font_file"]) if entry.get("font_file") else None,
               font_size=float(entry.get("font_size", 10)),
               logo=box(entry.get("logo")),
               fields={name: point(raw) for name, raw in entry.get("fields", {}).items()},
               accounts=[{name: point(raw) for name, raw in slot.items()} for slot in entry.get("accounts", [])],
               signature=box(entry.get("signature")),
               signed_date=point(entry.get("signed_date")),
               ip_address=point(entry.get("ip_address")),
          )

     @property
     def account_slots(self) -> int:
          return len(self.accounts)

     def ensure_template(self) -> None:
          if not os.path.isfile(self.template_path):
               raise TemplateMissingError(f"PDF template not found at: {self.template_path}")

     def ensure_font(self) -> None:
          if self.font_file:
               register_font(self.font_file, self.font)

     def validate(self) -> None:
          """
          Check the template asset against this layout.

          Raises:
               TemplateMissingError: the template or font file does not exist.
               TemplateMismatchError: its first page is not `page_size`.
          """
          self.ensure_template()
          self.ensure_font()
          reader = PdfReader(self.template_path)
          if not reader.pages:
               raise TemplateMismatchError(f"Template {self.template_path} has no pages")
          box = reader.pages[0].mediabox
          width, height = float(box.width), float(box.height)
          expected_w, expected_h = self.page_size
          if abs(width - expected_w) > PAGE_SIZE_TOLERANCE or abs(height - expected_h) > PAGE_SIZE_TOLERANCE:
               raise TemplateMismatchError(
                    f"Template {self.template_path} is {width:g}x{height:g}pt, "
                    f"position table '{self.version}' expects {expected_w:g}x{expected_h:g}pt"
               )


def _load_signature(store: SignatureStore, mandate: DirectDebitMandate) -> Optional[ImageReader]:
     """Decode a mandate's signature, or None if it is missing or not an image."""
     mandate_id = mandate.id
     try:
          data = store.load(mandate.digital_signature_path, mandate.customer_id)
     except Exception:
          logger.exception("Could not read signature for mandate %s", mandate_id)
          return None
     if not data:
          logger.warning("Signature image for mandate %s not found", mandate_id)
          return None
     try:
          image = ImageReader(BytesIO(data))
          image.getSize()
          return image
     except Exception:
          logger.warning("Signature image for mandate %s could not be decoded", mandate_id, exc_info=True)
          return None


def _fit(image_size: Tuple[float, float], box: Box) -> Tuple[float, float]:
     """Largest size that fits in `box` while keeping the image's aspect ratio."""
     width, height = image_size
     if width <= 0 or height <= 0:
          return 0.0, 0.0
     scale = min(box.width / width, box.height / height)
     return width * scale, height * scale


class MandateDocumentRenderer:
     """Template-overlay renderer."""

     def __init__(
          self,
          layout: TemplateLayout,
          cipher: FieldCipher,
          signature_store: SignatureStore,
          logo_path: Optional[str] = None,
     ):
          self.layout = layout
          self.cipher = cipher
          self.signature_store = signature_store
          self.logo_path = logo_path

     def render(self, mandate: DirectDebitMandate) -> bytes:
          """
          Render `mandate` (with customer and accounts loaded) to PDF bytes.

          Raises:
               TemplateMissingError: the template file is gone.
               DecryptionError: a protected field could not be decrypted.
          """
          self.layout.ensure_template()
          self.layout.ensure_font()

          overlay = BytesIO()
          c = canvas.Canvas(overlay, pagesize=self.layout.page_size, invariant=1)
          c.setFont(self.layout.font, self.layout.font_size)

          self._draw_logo(c)
          submission_date = self._draw_fields(c, mandate)
          self._draw_accounts(c, mandate)
          self._draw_signature(c, mandate)
          self._draw_metadata(c, mandate, submission_date)

          c.showPage()
          c.save()

          return self._merge(overlay.getvalue(), mandate, submission_date)

     def _text(self, c, value, position) -> None:
          if position is None or not _present(value):
               return
          c.drawString(position[0], position[1], str(value))

     def _draw_logo(self, c) -> None:
          box = self.layout.logo
          if box is None or not self.logo_path or not os.path.isfile(self.logo_path):
               return
          # White box hides the "COMPANY NAME AND LOGO" placeholder on the form
          c.saveState()
          c.setFillColorRGB(1, 1, 1)
          c.rect(box.x, box.y, box.width, box.height, stroke=0, fill=1)
          c.restoreState()
          c.drawImage(self.logo_path, box.x, box.y, width=box.width, height=box.height,
                      preserveAspectRatio=True, mask="auto")

     def _draw_fields(self, c, mandate: DirectDebitMandate) -> str:
          customer = mandate.customer
          fields = self.layout.fields

          self._text(c, customer.full_name, fields.get("customer_name"))
          self._text(c, customer.phone_number, fields.get("customer_phone"))
          self._text(c, customer.loan_balance, fields.get("loan_balance"))
          self._text(c, customer.monthly_repayment, fields.get("monthly_repayment"))
          self._text(c, _format_date(customer.start_date), fields.get("start_date"))
          self._text(c, customer.no_of_months, fields.get("no_of_months"))

          self._text(c, self.cipher.decrypt(mandate.ghana_card_number), fields.get("ghana_card"))

          submission_date = _format_date(mandate.submitted_at)
          self._text(c, mandate.reference, fields.get("mandate_ref"))
          self._text(c, submission_date, fields.get("date"))
          return submission_date

     def _draw_accounts(self, c, mandate: DirectDebitMandate) -> None:
          accounts = sorted(mandate.accounts, key=lambda a: a.account_order.value)
          if len(accounts) > self.layout.account_slots:
               logger.warning(
                    "Mandate %s has %d accounts but template %s has %d slots; extra accounts are not drawn",
                    mandate.id, len(accounts), self.layout.version, self.layout.account_slots,
               )
          for account, slot in zip(accounts, self.layout.accounts):
               self._text(c, account.bank_name, slot.get("bank_name"))
               self._text(c, account.branch, slot.get("branch"))
               self._text(c, account.account_name, slot.get("account_name"))
               self._text(c, self.cipher.decrypt(account.account_number), slot.get("account_number"))

     def _draw_signature(self, c, mandate: DirectDebitMandate) -> None:
          box = self.layout.signature
          if box is None:
               return
          if not mandate.digital_signature_path:
               c.drawString(box.x, box.y, SIGNATURE_LINE)
               return

          image = _load_signature(self.signature_store, mandate)
          if image is None:
               c.drawString(box.x, box.y, SIGNATURE_NOT_FOUND)
               return

          width, height = _fit(image.getSize(), box)
          try:
               c.drawImage(image, box.x, box.y, width=width, height=height, mask="auto")
          except Exception:
               logger.warning("Could not embed signature for mandate %s", mandate.id, exc_info=True)
               c.drawString(box.x, box.y, SIGNATURE_NOT_FOUND)

     def _draw_metadata(self, c, mandate: DirectDebitMandate, submission_date: str) -> None:
          self._text(c, f"Signed Date: {submission_date}", self.layout.signed_date)
          self._text(c, f"IP: {mandate.ip_address or 'N/A'}", self.layout.ip_address)

     def _merge(self, overlay_bytes: bytes, mandate: DirectDebitMandate, submission_date: str) -> bytes:
          overlay_page = PdfReader(BytesIO(overlay_bytes)).pages[0]

          writer = PdfWriter(clone_from=self.layout.template_path)
          writer.pages[0].merge_page(overlay_page)

          writer.add_metadata({
               "/Title": f"Direct Debit Mandate {mandate.reference}",
               "/Subject": f"Signed {submission_date} from IP {mandate.ip_address or 'N/A'}",
               "/Creator": "mandate-service",
          })

          output = BytesIO()
          writer.write(output)
          return output.getvalue()


class ScratchMandateRenderer:
     """
     Fallback renderer that needs no template file.

     Lays out a header, customer and loan details, an accounts table and
     the signature block on a blank A4 page.
     """

     SIGNATURE_BOX = Box(50, 0, 160, 60)

     def __init__(
          self,
          cipher: FieldCipher,
          signature_store: SignatureStore,
          font_file: str,
          bold_font_file: str,
          logo_path: Optional[str] = None,
     ):
          self.cipher = cipher
          self.signature_store = signature_store
          self.font = register_font(font_file)
          self.bold_font = register_font(bold_font_file)
          self.logo_path = logo_path

     def render(self, mandate: DirectDebitMandate) -> bytes:
          buffer = BytesIO()
          c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
          width, height = A4
          customer = mandate.customer
          submission_date = _format_date(mandate.submitted_at)

          c.setTitle(f"Direct Debit Mandate {mandate.reference}")
          c.setSubject(f"Signed {submission_date} from IP {mandate.ip_address or 'N/A'}")

          if self.logo_path and os.path.isfile(self.logo_path):
               c.drawImage(self.logo_path, 50, height - 85, width=130, height=50,
                           preserveAspectRatio=True, mask="auto")

          c.setFont(self.bold_font, 14)
          c.drawCentredString(width / 2, height - 110, "DIRECT DEBIT MANDATE")
          c.line(50, height - 120, width - 50, height - 120)

          y = height - 145
          c.setFont(self.font, 10)
          c.drawString(50, y, f"Mandate Ref: {mandate.reference}")
          c.drawString(width - 200, y, f"Date: {submission_date}")

          y -= 30
          c.setFont(self.bold_font, 11)
          c.drawString(50, y, "Customer Details")
          y -= 20
          c.setFont(self.font, 10)
          details = [
               ("Name", customer.full_name),
               ("Phone", customer.phone_number),
               ("Ghana Card", self.cipher.decrypt(mandate.ghana_card_number)),
               ("Loan Balance", customer.loan_balance),
               ("Monthly Repayment", customer.monthly_repayment),
               ("Start Date", _format_date(customer.start_date)),
               ("No. of Months", customer.no_of_months),
          ]
          for label, value in details:
               if not _present(value):
                    continue
               c.drawString(70, y, f"{label}:")
               c.drawString(220, y, str(value))
               y -= 15

          y -= 15
          c.setFont(self.bold_font, 11)
          c.drawString(50, y, "Bank Accounts")
          y -= 20
          columns = [("Order", 50), ("Bank", 100), ("Branch", 220), ("Account Name", 330), ("Account Number", 450)]
          c.setFont(self.bold_font, 9)
          for title, x in columns:
               c.drawString(x, y, title)
          y -= 5
          c.line(50, y, width - 50, y)
          y -= 13
          c.setFont(self.font, 9)
          for account in sorted(mandate.accounts, key=lambda a: a.account_order.value):
               row = [
                    account.account_order.value,
                    account.bank_name,
                    account.branch,
                    account.account_name,
                    self.cipher.decrypt(account.account_number),
               ]
               for (_, x), value in zip(columns, row):
                    c.drawString(x, y, value)
               y -= 15

          y -= 30
          c.setFont(self.bold_font, 11)
          c.drawString(50, y, "Signature")
          y -= 70
          self._draw_signature(c, mandate, y)

          c.setFont(self.font, 9)
          c.drawString(300, y + 30, f"Signed Date: {submission_date}")
          c.drawString(300, y + 15, f"IP: {mandate.ip_address or 'N/A'}")

          c.showPage()
          c.save()
          return buffer.getvalue()

     def _draw_signature(self, c, mandate: DirectDebitMandate, y: float) -> None:
          box = Box(self.SIGNATURE_BOX.x, y, self.SIGNATURE_BOX.width, self.SIGNATURE_BOX.height)
          c.setFont(self.font, 10)
          if not mandate.digital_signature_path:
               c.drawString(box.x, box.y, SIGNATURE_LINE)
               return
          image = _load_signature(self.signature_store, mandate)
          if image is None:
               c.drawString(box.x, box.y, SIGNATURE_NOT_FOUND)
               return
          width, height = _fit(image.getSize(), box)
          try:
               c.drawImage(image, box.x, box.y, width=width, height=height, mask="auto")
          except Exception:
               logger.warning("Could not embed signature for mandate %s", mandate.id, exc_info=True)
               c.drawString(box.x, box.y, SIGNATURE_NOT_FOUND)


def build_renderer(settings, cipher: FieldCipher, signature_store: SignatureStore):
     """
     Create the renderer selected by MANDATE_RENDERER.

     In template mode the position table is loaded and checked against the
     template asset, so a bad deployment fails at startup.
     """
     if settings.mandate_renderer == "scratch":
          return ScratchMandateRenderer(
               cipher,
               signature_store,
               font_file=settings.font_file,
               bold_font_file=settings.bold_font_file,
               logo_path=settings.logo_path,
          )
     if settings.mandate_renderer != "template":
          raise ValueError(f"Unknown MANDATE_RENDERER: {settings.mandate_renderer}")

     layout = TemplateLayout.load(settings.template_positions_file, settings.template_version)
     layout.validate()
     logger.info("Loaded mandate template %s (%s)", layout.version, layout.template_path)
     return MandateDocumentRenderer(layout, cipher, signature_store, logo_path=settings.logo_path)


async def render_with_timeout(renderer, mandate: DirectDebitMandate, timeout: float) -> bytes:
     """
     Run a blocking render in the default executor with a time budget.

     On timeout the caller gets RenderTimeoutError right away; the worker
     thread finishes in the background and its result is discarded.
     """
     loop = asyncio.get_running_loop()
     try:
          return await asyncio.wait_for(loop.run_in_executor(None, renderer.render, mandate), timeout=timeout)
     except asyncio.TimeoutError:
          logger.error("Rendering mandate %s exceeded %.1fs", mandate.id, timeout)
          raise RenderTimeoutError()
