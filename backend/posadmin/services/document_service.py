# Overview: Service-layer operations for document numbering.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence

TRANSACTION_DOCUMENT = "transaction"
TRANSFER_DOCUMENT = "transfer"

PREFIXES = {
    TRANSACTION_DOCUMENT: "TX",
    TRANSFER_DOCUMENT: "TR",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""


def _bump(document_type: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(document_type: str, pad: int = 6) -> str:
    """
    Allocate the next number for document_type, e.g. "TX-000042".

    Runs inside the caller's transaction and does not commit: a rolled back
    checkout gives its number back.
    """
    prefix = PREFIXES.get(document_type)
    if prefix is None:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")

    next_num = _bump(document_type)
    if next_num is None:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            # Another writer created the row first
            next_num = _bump(document_type)
            if next_num is None:
                raise

    return f"{prefix}-{next_num:0{pad}d}"
