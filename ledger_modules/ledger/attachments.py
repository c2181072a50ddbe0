"""
Attachment stores for materialized ledger records.

The materializer hands the document image to an ``AttachmentStore`` once
per created record.  A store failure never blocks an approval: the
materializer logs it and leaves ``attachment_url`` empty.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID


class AttachmentStore(Protocol):
    """Protocol for copying a document image onto a ledger record."""

    def attach(
        self,
        document_id: UUID,
        image_url: str,
        record_type: str,
        record_id: UUID,
    ) -> str | None:
        """Return the URL the record should reference."""
        ...


class SharedImageStore:
    """Default store: the record references the document's own image."""

    def attach(
        self,
        document_id: UUID,
        image_url: str,
        record_type: str,
        record_id: UUID,
    ) -> str | None:
        return image_url


class PrefixedCopyStore:
    """Builds a per-record key under a storage prefix.

    Used where images are copied into a records bucket, e.g.
    ``s3://ledger-attachments/invoices/<record_id>/<file name>``.
    """

    def __init__(self, prefix: str):
        self._prefix = prefix.rstrip("/")

    def attach(
        self,
        document_id: UUID,
        image_url: str,
        record_type: str,
        record_id: UUID,
    ) -> str | None:
        file_name = image_url.rsplit("/", 1)[-1]
        if not file_name:
            raise ValueError(f"Cannot derive a file name from {image_url!r}")
        return f"{self._prefix}/{record_type}/{record_id}/{file_name}"
