# services/mandate_service.py
"""
Mandate Service - submission pipeline and document generation.

Submitting a mandate:
1. Re-fetch the customer; it must exist and not have submitted already
2. Encrypt the national ID and every account number
3. In one transaction: flip the customer to SUBMITTED and clear its token
   (conditional on it not being SUBMITTED yet), store the signature image,
   insert the mandate and its accounts, commit. A signature written to
   storage is deleted again if the transaction rolls back
4. Afterwards, best-effort: render the PDF and record a GeneratedPDF row

The conditional UPDATE in step 3 is what guarantees at most one mandate
per customer when requests race on different server instances: the
second writer blocks on the row lock and then matches zero rows.
"""
import logging
import re
import uuid
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from models import Customer, CustomerStatus, DirectDebitAccount, DirectDebitMandate, GeneratedPDF, AccountOrder
from models.base import utcnow
from schemas.mandate import MandateSubmission
from .encryption import FieldCipher
from .errors import AlreadySubmittedError, CustomerNotFoundError, MandateNotFoundError, MandateStorageError
from .signatures import SignatureStore

logger = logging.getLogger(__name__)


class MandateSubmissionPipeline:
     """Validates, encrypts and atomically stores one mandate submission."""

     def __init__(self, db: Session, cipher: FieldCipher, signature_store: SignatureStore):
          self.db = db
          self.cipher = cipher
          self.signature_store = signature_store

     def submit(self, submission: MandateSubmission, client_ip: Optional[str] = None) -> DirectDebitMandate:
          """
          Store a validated submission.

          Args:
               submission: request body, already field-validated by its schema
               client_ip: best-effort address of the submitting client

          Returns:
               The committed DirectDebitMandate with its accounts

          Raises:
               CustomerNotFoundError: no customer with submission.customerId
               AlreadySubmittedError: the customer already has a mandate,
                    including when a concurrent request committed first
               MandateStorageError: the transaction failed; nothing was written
          """
          db = self.db
          customer_id = submission.customerId

          customer = db.get(Customer, customer_id)
          if customer is None:
               raise CustomerNotFoundError()
          if customer.status == CustomerStatus.SUBMITTED:
               raise AlreadySubmittedError()

          encrypted_card = self.cipher.encrypt(submission.ghanaCardNumber)
          accounts = [
               DirectDebitAccount(
                    account_order=AccountOrder(acc.accountOrder.value),
                    bank_name=acc.bankName,
                    branch=acc.branch,
                    account_name=acc.accountName,
                    account_number=self.cipher.encrypt(acc.accountNumber),
               )
               for acc in submission.accounts
          ]

          stored_signature = None
          try:
               claimed = db.execute(
                    update(Customer)
                    .where(Customer.id == customer_id, Customer.status != CustomerStatus.SUBMITTED)
                    .values(status=CustomerStatus.SUBMITTED, session_token=None)
                    .execution_options(synchronize_session=False)
               )
               if claimed.rowcount != 1:
                    db.rollback()
                    raise AlreadySubmittedError()

               signature_ref = self.signature_store.save(submission.signature, customer_id)
               if signature_ref != submission.signature:
                    stored_signature = signature_ref

               mandate = DirectDebitMandate(
                    id=str(uuid.uuid4()),
                    customer_id=customer_id,
                    ghana_card_number=encrypted_card,
                    agreement_accepted=submission.agreementAccepted,
                    digital_signature_path=signature_ref,
                    submitted_at=utcnow(),
                    ip_address=client_ip,
                    accounts=accounts,
               )
               db.add(mandate)
               db.flush()
               db.commit()
          except MandateStorageError:
               db.rollback()
               raise
          except SQLAlchemyError as exc:
               db.rollback()
               self.signature_store.discard(stored_signature, customer_id)
               logger.exception("Mandate transaction failed for customer %s", customer_id)
               raise MandateStorageError() from exc

          db.expire(customer)
          logger.info("Stored mandate %s for customer %s with %d account(s)", mandate.id, customer_id, len(accounts))
          return mandate


def get_mandate(db: Session, mandate_id: str) -> DirectDebitMandate:
     """
     Load a mandate with its customer and accounts for rendering.

     Raises:
          MandateNotFoundError: no mandate with this id
     """
     mandate = (
          db.query(DirectDebitMandate)
          .options(joinedload(DirectDebitMandate.customer), selectinload(DirectDebitMandate.accounts))
          .filter(DirectDebitMandate.id == mandate_id)
          .first()
     )
     if mandate is None:
          raise MandateNotFoundError()
     return mandate


def list_mandates(db: Session) -> List[DirectDebitMandate]:
     """All submitted mandates, newest first, with relations loaded."""
     return (
          db.query(DirectDebitMandate)
          .options(
               joinedload(DirectDebitMandate.customer),
               selectinload(DirectDebitMandate.accounts),
               selectinload(DirectDebitMandate.generated_pdfs),
          )
          .order_by(DirectDebitMandate.submitted_at.desc())
          .all()
     )


def pdf_filename(mandate: DirectDebitMandate) -> str:
     """Download name: customer name plus a mandate id fragment."""
     name = re.sub(r"\s+", "_", mandate.customer.full_name.strip())
     name = re.sub(r"[^A-Za-z0-9_.-]", "", name) or "Customer"
     return f"Mandate_{name}_{mandate.id[:8]}.pdf"


def generate_document(database, renderer, storage, mandate_id: str) -> Optional[GeneratedPDF]:
     """
     Render a stored mandate, keep the PDF in storage and record it.

     Runs after the submission response has been sent. A failure is logged
     and leaves the mandate untouched; the document can be rendered again
     on demand from the PDF endpoint.
     """
     try:
          with database.session() as db:
               mandate = get_mandate(db, mandate_id)
               pdf_bytes = renderer.render(mandate)
               reference = storage.put(
                    pdf_bytes,
                    f"mandates/{mandate.id}",
                    pdf_filename(mandate),
                    "application/pdf",
               )
               record = GeneratedPDF(mandate_id=mandate.id, file_path=reference, generated_at=utcnow())
               db.add(record)
               db.flush()
               logger.info("Generated PDF for mandate %s", mandate_id)
               return record
     except Exception:
          logger.exception("PDF generation failed for mandate %s", mandate_id)
          return None
