"""Workflow document loading and serialization."""

from dslforge.parser.errors import ParseError
from dslforge.parser.loader import (
    document_fingerprint,
    document_from_dict,
    document_to_dict,
    dump_document,
    load_document,
    parse_document,
)

__all__ = [
    "ParseError",
    "parse_document",
    "load_document",
    "document_from_dict",
    "document_to_dict",
    "dump_document",
    "document_fingerprint",
]
