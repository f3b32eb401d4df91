# schemas/mandate.py
"""
Pydantic schemas for the mandate submission API.

Field names follow the JSON posted by the public mandate form.
"""
import re
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from enum import Enum


GHANA_CARD_PATTERN = re.compile(r"^GHA-[0-9]{9}-[0-9]$")
MIN_ACCOUNT_NUMBER_LENGTH = 8
MAX_ACCOUNTS = 3


class AccountOrderEnum(str, Enum):
     """Priority rank of an account within a mandate."""
     FIRST = "1ST"
     SECOND = "2ND"
     THIRD = "3RD"


class MandateAccountIn(BaseModel):
     """One bank account in a mandate submission."""
     accountOrder: AccountOrderEnum
     bankName: str = Field(..., min_length=2, description="Bank name")
     branch: str = Field(..., min_length=2, description="Branch name")
     accountName: str = Field(..., min_length=2, description="Account holder name")
     accountNumber: str = Field(..., min_length=MIN_ACCOUNT_NUMBER_LENGTH, description="Bank account number")

     @field_validator("bankName", "branch", "accountName", "accountNumber")
     @classmethod
     def not_blank(cls, value: str) -> str:
          if not value.strip():
               raise ValueError("Field is required")
          return value.strip()


class MandateSubmission(BaseModel):
     """Request body for POST /api/mandates."""
     customerId: str = Field(..., min_length=1, description="Customer the mandate belongs to")
     fullName: str = Field(..., min_length=2, description="Customer full name as signed")
     ghanaCardNumber: str = Field(..., description="National ID, e.g. GHA-123456789-0")
     accounts: List[MandateAccountIn] = Field(..., min_length=1, max_length=MAX_ACCOUNTS)
     agreementAccepted: bool = Field(..., description="Must be true")
     signature: str = Field(..., min_length=1, description="Signature image as a data URI")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "customerId": "6f1c2b9e-3a4d-4c1e-9a57-0d2f8b1e7c44",
                    "fullName": "Ama Mensah",
                    "ghanaCardNumber": "GHA-123456789-0",
                    "accounts": [
                         {
                              "accountOrder": "1ST",
                              "bankName": "GCB Bank",
                              "branch": "Accra Main",
                              "accountName": "Ama Mensah",
                              "accountNumber": "1234567890123"
                         }
                    ],
                    "agreementAccepted": True,
                    "signature": "data:image/png;base64,iVBORw0KGgo..."
               }
          }
     )

     @field_validator("ghanaCardNumber")
     @classmethod
     def check_ghana_card(cls, value: str) -> str:
          if not GHANA_CARD_PATTERN.match(value):
               raise ValueError("Invalid Ghana Card Number format (e.g., GHA-123456789-0).")
          return value

     @field_validator("agreementAccepted", mode="before")
     @classmethod
     def check_agreement(cls, value):
          if value is not True:
               raise ValueError("You must accept the terms and conditions.")
          return value

     @field_validator("signature")
     @classmethod
     def check_signature(cls, value: str) -> str:
          if not value.strip():
               raise ValueError("Signature is required.")
          return value

     @model_validator(mode="after")
     def check_unique_account_order(self):
          orders = [account.accountOrder for account in self.accounts]
          if len(orders) != len(set(orders)):
               raise ValueError("Each account must have a different accountOrder.")
          return self


class MandateCreatedResponse(BaseModel):
     """Response for a stored mandate."""
     success: bool = True
     mandateId: str

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "success": True,
                    "mandateId": "0b9e4c1a-7d2f-4f8e-b1a3-5c6d7e8f9a0b"
               }
          }
     )


class MandateSummary(BaseModel):
     """One row of the admin list of submitted mandates."""
     id: str
     reference: str
     submittedAt: datetime
     customerId: str
     customerName: str
     customerPhone: str
     customerLoanBalance: Optional[str] = None
     customerMonthlyRepayment: Optional[str] = None
     customerStartDate: Optional[date] = None
     customerNoOfMonths: Optional[int] = None
     accountCount: int
     hasPDF: bool
     pdfPath: Optional[str] = None
     ipAddress: Optional[str] = None


class MandateListResponse(BaseModel):
     mandates: List[MandateSummary]
     total: int
