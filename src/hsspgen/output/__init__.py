"""HSSP report output."""

from hsspgen.output.hssp import (
    ProteinRow,
    ReportFormatter,
    ReportHeader,
    format_protein_row,
    parse_protein_row,
    read_protein_table,
)

__all__ = [
    "ProteinRow",
    "ReportFormatter",
    "ReportHeader",
    "format_protein_row",
    "parse_protein_row",
    "read_protein_table",
]
