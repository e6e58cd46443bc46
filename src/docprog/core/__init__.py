"""
Core primitives: document value types, Result, the error taxonomy,
structured logging and settings.

Layer 1 -- Types & Errors
    documents.py   Key, VersionToken, DocumentValue
    result.py      Ok / Err / try_result
    errors.py      DocProgError hierarchy

Layer 2 -- Ambient
    logging.py     structlog configuration
    settings.py    DocStoreSettings (pydantic-settings)

``codec.py`` builds on the program layer and is imported explicitly.
"""

from docprog.core.documents import (
    NO_VERSION,
    DocumentStore,
    DocumentValue,
    Key,
    RawContent,
    VersionToken,
    as_key,
)
from docprog.core.errors import (
    AlreadyExistsError,
    BackendFailure,
    BatchItemFailure,
    DecodeError,
    DocProgError,
    ErrorCategory,
    NotConnectedError,
    NotFoundError,
    VersionConflictError,
)
from docprog.core.result import Err, Ok, Result, try_result

__all__ = [
    "NO_VERSION",
    "DocumentStore",
    "DocumentValue",
    "Key",
    "RawContent",
    "VersionToken",
    "as_key",
    "AlreadyExistsError",
    "BackendFailure",
    "BatchItemFailure",
    "DecodeError",
    "DocProgError",
    "ErrorCategory",
    "NotConnectedError",
    "NotFoundError",
    "VersionConflictError",
    "Err",
    "Ok",
    "Result",
    "try_result",
]
