# schemas/customer.py
"""
Pydantic schemas for customer records and the public form context.

CustomerCreate is the typed boundary for the import/admin flows: rows
from spreadsheets must be converted into it before reaching the core.
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from enum import Enum


class CustomerStatusEnum(str, Enum):
     PENDING = "PENDING"
     SUBMITTED = "SUBMITTED"
     EXPIRED = "EXPIRED"


class CustomerCreate(BaseModel):
     """Schema for creating (or updating, by external_id) a customer."""
     full_name: str = Field(..., min_length=1, max_length=200)
     phone_number: str = Field(..., min_length=1, max_length=50)
     external_id: Optional[str] = Field(None, max_length=100, description="Lender's customer number")
     account_number: Optional[str] = Field(None, max_length=100, description="Loan account number")
     loan_status: Optional[str] = Field(None, max_length=100)
     loan_balance: Optional[str] = Field(None, max_length=50)
     monthly_repayment: Optional[str] = Field(None, max_length=50)
     start_date: Optional[date] = None
     no_of_months: Optional[int] = Field(None, gt=0)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "full_name": "Ama Mensah",
                    "phone_number": "233241234567",
                    "external_id": "CUST-00412",
                    "loan_balance": "5400.00",
                    "monthly_repayment": "450.00",
                    "start_date": "2026-11-01",
                    "no_of_months": 12
               }
          }
     )

     @field_validator("full_name", "phone_number")
     @classmethod
     def strip_required(cls, value: str) -> str:
          value = value.strip()
          if not value:
               raise ValueError("Field is required")
          return value


class CustomerResponse(BaseModel):
     """Schema for customer response (admin view)."""
     id: str
     external_id: Optional[str] = None
     full_name: str
     phone_number: str
     loan_balance: Optional[str] = None
     monthly_repayment: Optional[str] = None
     start_date: Optional[date] = None
     no_of_months: Optional[int] = None
     status: CustomerStatusEnum
     token_expiry: Optional[datetime] = None
     invitation_link: Optional[str] = None

     model_config = ConfigDict(from_attributes=True)


class LoanDetails(BaseModel):
     balance: Optional[str] = None
     monthlyRepayment: Optional[str] = None
     startDate: Optional[date] = None
     noOfMonths: Optional[int] = None


class MandateFormContext(BaseModel):
     """What the public form needs once a session token is accepted."""
     customerId: str
     customerName: str
     loanDetails: LoanDetails


class ExpireCustomersResponse(BaseModel):
     expired: int
