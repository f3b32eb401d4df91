# models/generated_pdf.py
"""
GeneratedPDF model - records that a mandate document was rendered and
where the output was stored. Duplicate rows for one mandate are allowed;
the renderer can always regenerate the document from the mandate.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class GeneratedPDF(Base):
     __tablename__ = "generated_pdfs"

     id = Column(String(36), primary_key=True, default=new_id)
     mandate_id = Column(
          String(36),
          ForeignKey("direct_debit_mandates.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     file_path = Column(String(1000), nullable=False)
     generated_at = Column(DateTime, default=utcnow, nullable=False)

     # Relationships
     mandate = relationship("DirectDebitMandate", back_populates="generated_pdfs")

     def __repr__(self):
          return f"<GeneratedPDF(id={self.id}, mandate_id={self.mandate_id}, path='{self.file_path}')>"
