"""Statement ingestion: tolerant tabular parsing and file loading."""

from .statement_csv import parse_statement
from .utils import load_statement_text

__all__ = ["parse_statement", "load_statement_text"]
