# blob_storage.py
"""
Document storage for signature images and generated mandate PDFs.

Two backends share one small interface:
- LocalDocumentStorage: files under a directory (development, tests)
- AzureBlobDocumentStorage: Azure Blob Storage container (production)

References returned by put() are stored in the database and handed back
to get() later: a filesystem path for the local store, the blob URL for
Azure.
"""
import logging
import os
from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

logger = logging.getLogger(__name__)


class LocalDocumentStorage:
     """Stores documents as files below `root`."""

     def __init__(self, root: str):
          self.root = root
          os.makedirs(self.root, exist_ok=True)

     def owns(self, reference: str, folder: str = "") -> bool:
          """True if `reference` resolves to a path inside `root` (and `folder` below it)."""
          base = os.path.realpath(os.path.join(self.root, folder))
          return os.path.realpath(reference).startswith(base + os.sep)

     def put(self, data: bytes, folder: str, filename: str, content_type: str) -> str:
          directory = os.path.join(self.root, folder)
          os.makedirs(directory, exist_ok=True)
          path = os.path.join(directory, filename)
          with open(path, "wb") as buffer:
               buffer.write(data)
          return path

     def get(self, reference: str) -> Optional[bytes]:
          """Return the stored bytes, or None if `reference` is not a file this store wrote."""
          if not self.owns(reference):
               logger.warning("Refusing to read outside document storage: %s", reference)
               return None
          if not os.path.isfile(reference):
               return None
          with open(reference, "rb") as f:
               return f.read()

     def delete(self, reference: str) -> None:
          if self.owns(reference) and os.path.isfile(reference):
               os.remove(reference)


class AzureBlobDocumentStorage:
     """Stores documents as blobs in one container."""

     def __init__(self, account: str, key: str, container: str):
          self.account = account
          self.container = container
          self.blob_service = BlobServiceClient.from_connection_string(
               f"DefaultEndpointsProtocol=https;"
               f"AccountName={account};"
               f"AccountKey={key};"
               f"EndpointSuffix=core.windows.net"
          )

     def _url_prefix(self) -> str:
          return f"https://{self.account}.blob.core.windows.net/{self.container}/"

     def owns(self, reference: str, folder: str = "") -> bool:
          prefix = self._url_prefix() + (f"{folder.strip('/')}/" if folder else "")
          return reference.startswith(prefix) and ".." not in reference[len(prefix):].split("/")

     def put(self, data: bytes, folder: str, filename: str, content_type: str) -> str:
          blob_name = f"{folder}/{filename}"
          blob_client = self.blob_service.get_blob_client(container=self.container, blob=blob_name)
          blob_client.upload_blob(
               data,
               overwrite=True,
               content_settings=ContentSettings(content_type=content_type),
          )
          return self._url_prefix() + blob_name

     def get(self, reference: str) -> Optional[bytes]:
          if not self.owns(reference):
               return None
          blob_name = reference[len(self._url_prefix()):]
          blob_client = self.blob_service.get_blob_client(container=self.container, blob=blob_name)
          try:
               return blob_client.download_blob().readall()
          except ResourceNotFoundError:
               logger.warning("Blob not found: %s", blob_name)
               return None

     def delete(self, reference: str) -> None:
          if not self.owns(reference):
               return
          blob_name = reference[len(self._url_prefix()):]
          blob_client = self.blob_service.get_blob_client(container=self.container, blob=blob_name)
          try:
               blob_client.delete_blob()
          except ResourceNotFoundError:
               logger.warning("Blob already gone: %s", blob_name)


def build_document_storage(settings):
     """Create the storage backend selected by DOCUMENT_STORAGE."""
     if settings.document_storage == "azure":
          if not settings.azure_storage_account or not settings.azure_storage_key:
               raise ValueError("AZURE_STORAGE_ACCOUNT and AZURE_STORAGE_KEY must be set for azure storage")
          return AzureBlobDocumentStorage(
               settings.azure_storage_account,
               settings.azure_storage_key,
               settings.azure_storage_container,
          )
     if settings.document_storage == "local":
          return LocalDocumentStorage(settings.document_storage_dir)
     raise ValueError(f"Unknown DOCUMENT_STORAGE: {settings.document_storage}")
