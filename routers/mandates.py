# routers/mandates.py
"""
Mandate API routes.

POST /api/mandates                 public form submission
GET  /api/mandates                 admin list of submitted mandates
GET  /api/mandates/{id}/pdf        admin download, rendered on demand
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from database import get_session
from deps import get_cipher, get_client_ip, get_renderer, get_settings, get_signature_store, verify_token
from schemas.mandate import MandateCreatedResponse, MandateListResponse, MandateSubmission, MandateSummary
from services.errors import (
     AlreadySubmittedError,
     CustomerNotFoundError,
     DecryptionError,
     MandateNotFoundError,
     MandateStorageError,
     RenderError,
     RenderTimeoutError,
)
from services.mandate_service import (
     MandateSubmissionPipeline,
     generate_document,
     get_mandate,
     list_mandates,
     pdf_filename,
)
from services.pdf_renderer import render_with_timeout

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mandates", tags=["mandates"])


@router.post(
     "",
     response_model=MandateCreatedResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Submit a signed mandate"
)
def create_mandate(
     body: MandateSubmission,
     request: Request,
     background_tasks: BackgroundTasks,
     db: Session = Depends(get_session),
     cipher=Depends(get_cipher),
     signature_store=Depends(get_signature_store),
):
     """
     Store a mandate submitted from the public form.

     The mandate, its accounts and the customer's status change are written
     in one transaction. The PDF is generated after the response is sent;
     if that fails the mandate still stands.
     """
     pipeline = MandateSubmissionPipeline(db, cipher, signature_store)
     try:
          mandate = pipeline.submit(body, client_ip=get_client_ip(request))
     except CustomerNotFoundError:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail="Invalid Customer ID"
          )
     except AlreadySubmittedError:
          raise HTTPException(
               status_code=status.HTTP_400_BAD_REQUEST,
               detail="Mandate already submitted"
          )
     except MandateStorageError:
          raise HTTPException(
               status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
               detail="Failed to submit mandate"
          )

     state = request.app.state
     background_tasks.add_task(generate_document, state.db, state.renderer, state.storage, mandate.id)

     return MandateCreatedResponse(mandateId=mandate.id)


@router.get(
     "",
     response_model=MandateListResponse,
     summary="List submitted mandates"
)
def get_submitted_mandates(
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     """Submitted mandates, newest first, with customer and PDF status."""
     mandates = list_mandates(db)
     summaries = [_build_mandate_summary(m) for m in mandates]
     return MandateListResponse(mandates=summaries, total=len(summaries))


@router.get(
     "/{mandate_id}/pdf",
     summary="Download mandate PDF",
     response_class=Response,
     responses={200: {"content": {"application/pdf": {}}}},
)
async def download_mandate_pdf(
     mandate_id: str,
     db: Session = Depends(get_session),
     renderer=Depends(get_renderer),
     settings=Depends(get_settings),
     token: dict = Depends(verify_token),
):
     """Render the mandate document on demand and return it as an attachment."""
     try:
          mandate = await run_in_threadpool(get_mandate, db, mandate_id)
     except MandateNotFoundError:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail="Mandate not found"
          )

     try:
          pdf_bytes = await render_with_timeout(renderer, mandate, settings.render_timeout_seconds)
     except RenderTimeoutError:
          raise HTTPException(
               status_code=status.HTTP_504_GATEWAY_TIMEOUT,
               detail="PDF generation timed out"
          )
     except (RenderError, DecryptionError):
          logger.exception("Error generating PDF for mandate %s", mandate_id)
          raise HTTPException(
               status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
               detail="Failed to generate PDF"
          )

     return Response(
          content=pdf_bytes,
          media_type="application/pdf",
          headers={"Content-Disposition": f'attachment; filename="{pdf_filename(mandate)}"'},
     )


def _build_mandate_summary(mandate) -> MandateSummary:
     """
     Helper function to build MandateSummary with related data.
     """
     customer = mandate.customer
     latest_pdf = mandate.generated_pdfs[0] if mandate.generated_pdfs else None

     return MandateSummary(
          id=mandate.id,
          reference=mandate.reference,
          submittedAt=mandate.submitted_at,
          customerId=customer.id,
          customerName=customer.full_name,
          customerPhone=customer.phone_number,
          customerLoanBalance=customer.loan_balance,
          customerMonthlyRepayment=customer.monthly_repayment,
          customerStartDate=customer.start_date,
          customerNoOfMonths=customer.no_of_months,
          accountCount=len(mandate.accounts),
          hasPDF=latest_pdf is not None,
          pdfPath=latest_pdf.file_path if latest_pdf else None,
          ipAddress=mandate.ip_address,
     )
