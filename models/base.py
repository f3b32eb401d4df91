# models/base.py
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase, declared_attr


def new_id() -> str:
     """Opaque primary key used by every table."""
     return str(uuid.uuid4())


class Base(DeclarativeBase):
     """
     Base class for all SQLAlchemy models.
     Provides common configuration and mixins.
     """

     @declared_attr.directive
     def __tablename__(cls) -> str:
          """
          Automatically generate table name from class name.
          Example: DirectDebitAccount -> direct_debit_accounts
          """
          import re
          name = re.sub(r'(?<!^)(?=[A-Z])', '_', cls.__name__).lower()
          # Pluralize (simple version)
          if name.endswith('y'):
               return name[:-1] + 'ies'
          elif name.endswith('s'):
               return name + 'es'
          return name + 's'


def utcnow() -> datetime:
     """Naive UTC timestamp, the form every DateTime column is stored in."""
     return datetime.now(timezone.utc).replace(tzinfo=None)
