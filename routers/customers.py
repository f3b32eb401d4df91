# routers/customers.py
"""
Customer admin API.

Creation is the typed hand-off point for the import/admin flows; token
re-issue and the expiry sweep support the invitation lifecycle.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from deps import get_settings, verify_token
from models import Customer
from schemas.customer import CustomerCreate, CustomerResponse, ExpireCustomersResponse
from services.customer_service import CustomerService
from services.errors import AlreadySubmittedError, CustomerNotFoundError

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.post(
     "",
     response_model=CustomerResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create or update a customer"
)
def create_customer(
     customer_data: CustomerCreate,
     db: Session = Depends(get_session),
     settings=Depends(get_settings),
     token: dict = Depends(verify_token)
):
     """
     Create a PENDING customer with a fresh session token.

     If **external_id** matches an existing customer, that record is updated
     instead and keeps its current token.
     """
     customer = CustomerService.create_customer(
          db,
          customer_data,
          token_ttl_hours=settings.session_token_ttl_hours
     )
     db.commit()
     return _build_customer_response(customer, settings.public_base_url)


@router.post(
     "/expire-stale",
     response_model=ExpireCustomersResponse,
     summary="Expire customers whose link has lapsed"
)
def expire_stale_customers(
     db: Session = Depends(get_session),
     token: dict = Depends(verify_token)
):
     count = CustomerService.mark_expired_customers(db)
     db.commit()
     return ExpireCustomersResponse(expired=count)


@router.post(
     "/{customer_id}/reissue-token",
     response_model=CustomerResponse,
     summary="Issue a new invitation token"
)
def reissue_customer_token(
     customer_id: str,
     db: Session = Depends(get_session),
     settings=Depends(get_settings),
     token: dict = Depends(verify_token)
):
     try:
          customer = CustomerService.reissue_token(
               db,
               customer_id,
               token_ttl_hours=settings.session_token_ttl_hours
          )
     except CustomerNotFoundError:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Customer with ID {customer_id} not found"
          )
     except AlreadySubmittedError:
          raise HTTPException(
               status_code=status.HTTP_409_CONFLICT,
               detail="Customer has already submitted a mandate"
          )
     db.commit()
     return _build_customer_response(customer, settings.public_base_url)


def _build_customer_response(customer: Customer, base_url: str) -> CustomerResponse:
     response = CustomerResponse.model_validate(customer)
     response.invitation_link = CustomerService.invitation_link(customer, base_url)
     return response
