# routers/sessions.py
"""
Public form entry points.

The SMS invitation links to /mandate?token=...; older links use
/session/{token}. Both run the session token gate and return what the
form needs. No login is involved: the token is the credential.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_session
from schemas.customer import LoanDetails, MandateFormContext
from services.errors import TokenError, TokenExpiredError
from services.token_gate import SessionTokenGate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


def _form_context(db: Session, token: str) -> MandateFormContext:
     try:
          customer = SessionTokenGate(db).validate(token)
     except TokenExpiredError as exc:
          raise HTTPException(status_code=status.HTTP_410_GONE, detail=exc.message)
     except TokenError as exc:
          # Unknown and already-used tokens get the same answer
          logger.info("Rejected mandate form token")
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)

     return MandateFormContext(
          customerId=customer.id,
          customerName=customer.full_name,
          loanDetails=LoanDetails(
               balance=customer.loan_balance,
               monthlyRepayment=customer.monthly_repayment,
               startDate=customer.start_date,
               noOfMonths=customer.no_of_months,
          ),
     )


@router.get(
     "/mandate",
     response_model=MandateFormContext,
     summary="Open the mandate form"
)
def open_mandate_form(
     token: Optional[str] = Query(None, description="Session token from the SMS link"),
     db: Session = Depends(get_session)
):
     if not token:
          raise HTTPException(
               status_code=status.HTTP_400_BAD_REQUEST,
               detail="No token was provided. Please use the link sent to you via SMS."
          )
     return _form_context(db, token)


@router.get(
     "/session/{token}",
     response_model=MandateFormContext,
     summary="Open the mandate form (path token)"
)
def open_session(token: str, db: Session = Depends(get_session)):
     return _form_context(db, token)
