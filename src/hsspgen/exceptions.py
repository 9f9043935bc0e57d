"""Error hierarchy for HSSP report generation.

Parse-time and alignment-time errors are fatal for the chain that raised
them; the pipeline decides whether to skip that chain or abort the report.
"""

from __future__ import annotations


class HSSPError(Exception):
    """Base class for all errors raised by hsspgen."""


class FormatError(HSSPError, ValueError):
    """Malformed input: bad Stockholm header, missing id suffix, too few rows."""


class AlignmentError(HSSPError, ValueError):
    """An alignment row pair cannot be turned into a hit."""


class DivisionError(HSSPError, ArithmeticError):
    """A hit has no aligned residue pairs, so its ratios are undefined."""


class SearchTimeoutError(HSSPError, TimeoutError):
    """The external aligner exceeded its configured run time."""


class ProcessError(HSSPError):
    """The external aligner exited with a non-zero status.

    Attributes:
        returncode: Exit status of the process.
        log_tail: Last lines of the process log, if any were captured.
    """

    def __init__(self, message: str, returncode: int = -1, log_tail: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.log_tail = log_tail
