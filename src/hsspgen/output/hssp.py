"""Fixed-width HSSP report writer.

Sections, in order: header, ``## PROTEINS``, ``## ALIGNMENTS`` blocks,
``## SEQUENCE PROFILE AND ENTROPY``, ``## INSERTION LIST`` and ``//``.
Column positions are significant to downstream readers; integer fields
are zero padded.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence, TextIO

from hsspgen.constants.matrices import THRESHOLD_FORMULA
from hsspgen.constants.residues import PROFILE_ALPHABET, UNALIGNED_SYMBOL
from hsspgen.processing.hits import Hit
from hsspgen.processing.profile import ResidueHInfo

HSSP_VERSION = "2.0"
CONTACT = "hsspgen maintainers"

BLOCK_WIDTH = 70
INSERTION_LINE_WIDTH = 100

PROTEINS_TITLE = "## PROTEINS : identifier and alignment statistics"
PROTEINS_HEADER = (
    "  NR.    ID         STRID   %IDE %WSIM IFIR ILAS JFIR JLAS LALI NGAP LGAP LSEQ2 ACCNUM     PROTEIN"
)
ALIGNMENT_HEADER = " SeqNo  PDBNo AA STRUCTURE BP1 BP2  ACC NOCC  VAR  "
PROFILE_TITLE = "## SEQUENCE PROFILE AND ENTROPY"
PROFILE_HEADER = (
    " SeqNo PDBNo"
    + "".join(f"   {aa}" for aa in PROFILE_ALPHABET)
    + "  NOCC NDEL NINS ENTROPY RELENT WEIGHT"
)
INSERTION_TITLE = "## INSERTION LIST"
INSERTION_HEADER = " AliNo  IPOS  JPOS   Len Sequence"
INSERTION_CONTINUATION = "     +                   "

# DSSP columns written for a chain break
BREAK_DSSP = "        !  !           0   0    0 "


@dataclass
class ReportHeader:
    """Metadata written above the tables.

    Attributes:
        pdb_id: Identifier of the protein, ``UNKN`` for a bare sequence
        databank_version: Version string of the searched databank
        seq_length: Total length of the chains used
        nchain: Number of chains in the input
        used_chains: Chain ids that were actually aligned
        description: Ordered ``HEADER``/``COMPND``/``SOURCE``/``AUTHOR`` lines
        generated: Report date, today by default
    """
    pdb_id: str = "UNKN"
    databank_version: str = ""
    seq_length: int = 0
    nchain: int = 1
    used_chains: List[str] = field(default_factory=lambda: ["A"])
    description: Dict[str, str] = field(default_factory=dict)
    generated: Optional[date] = None

    @property
    def kchain(self) -> int:
        return len(self.used_chains)


@dataclass
class ProteinRow:
    """One row of the ``## PROTEINS`` table as read back from text."""
    rank: int
    id: str
    pdb_code: str
    ide: float
    wsim: float
    ifir: int
    ilas: int
    jfir: int
    jlas: int
    lali: int
    ngap: int
    lgap: int
    lseq2: int
    accession: str
    description: str


class ReportFormatter:
    """Serialise hits and residue profiles into an HSSP report.

    Args:
        block_width: Hits per ``## ALIGNMENTS`` block
        insertion_line_width: Residues per insertion list line
        version: Version string in the ``HSSP`` line
        contact: Text of the ``CONTACT`` line
    """

    def __init__(
        self,
        block_width: int = BLOCK_WIDTH,
        insertion_line_width: int = INSERTION_LINE_WIDTH,
        version: str = HSSP_VERSION,
        contact: str = CONTACT,
    ):
        self.block_width = block_width
        self.insertion_line_width = insertion_line_width
        self.version = version
        self.contact = contact

    def format(
        self,
        header: ReportHeader,
        hits: Sequence[Hit],
        residues: Sequence[ResidueHInfo],
    ) -> str:
        """Return the full report as a string."""
        out = io.StringIO()
        self.write(out, header, hits, residues)
        return out.getvalue()

    def write(
        self,
        out: TextIO,
        header: ReportHeader,
        hits: Sequence[Hit],
        residues: Sequence[ResidueHInfo],
    ) -> None:
        """Write the full report to ``out``.

        ``hits`` must already be ranked.
        """
        for section in (
            self.header_lines(header, len(hits)),
            self.protein_lines(hits),
            self.alignment_lines(hits, residues),
            self.profile_lines(residues),
            self.insertion_lines(hits),
        ):
            for line in section:
                out.write(line)
                out.write("\n")
        out.write("//\n")

    def header_lines(self, header: ReportHeader, nalign: int) -> Iterator[str]:
        generated = header.generated or date.today()

        yield f"HSSP       HOMOLOGY DERIVED SECONDARY STRUCTURE OF PROTEINS , VERSION {self.version}"
        yield f"PDBID      {header.pdb_id}"
        yield f"DATE       file generated on {generated.isoformat()}"
        yield f"SEQBASE    {header.databank_version}"
        yield f"THRESHOLD  according to: {THRESHOLD_FORMULA}"
        yield f"CONTACT    {self.contact}"
        for key, value in header.description.items():
            yield f"{key:<11}{value}"
        yield "SEQLENGTH  %04d" % header.seq_length
        yield "NCHAIN     %04d chain(s) in %s data set" % (header.nchain, header.pdb_id)
        if header.kchain != header.nchain:
            yield "KCHAIN     %04d chain(s) used here ; chains(s) : %s" % (
                header.kchain,
                ",".join(header.used_chains),
            )
        yield "NALIGN     %04d" % nalign
        yield ""

    def protein_lines(self, hits: Sequence[Hit]) -> Iterator[str]:
        yield PROTEINS_TITLE
        yield PROTEINS_HEADER
        for nr, hit in enumerate(hits, start=1):
            yield format_protein_row(hit, hit.rank or nr)

    def alignment_lines(
        self,
        hits: Sequence[Hit],
        residues: Sequence[ResidueHInfo],
    ) -> Iterator[str]:
        for first in range(0, len(hits), self.block_width):
            block = hits[first:first + self.block_width]

            yield "## ALIGNMENTS %04d - %04d" % (first + 1, first + len(block))
            yield ALIGNMENT_HEADER + "".join(
                "....:....%d" % (((first + 10 * k) // 10 + 1) % 10)
                for k in range(self.block_width // 10)
            )

            for res in residues:
                if res.is_break:
                    yield " %05d%s   0    0" % (res.seq_nr, BREAK_DSSP)
                    continue

                aln = "".join(
                    hit.letter_at(res.column) if hit.chain_id == res.chain_id else UNALIGNED_SYMBOL
                    for hit in block
                )
                yield " %05d%s%04d %04d  %s" % (
                    res.seq_nr,
                    res.dssp,
                    res.nocc,
                    res.variability,
                    aln,
                )

    def profile_lines(self, residues: Sequence[ResidueHInfo]) -> Iterator[str]:
        yield PROFILE_TITLE
        yield PROFILE_HEADER
        for res in residues:
            if res.is_break:
                yield (
                    "%05d       " % res.seq_nr
                    + "   0" * len(PROFILE_ALPHABET)
                    + "     0    0    0   0.000      0"
                )
                continue

            dist = "".join("%04d" % res.distribution.get(aa, 0) for aa in PROFILE_ALPHABET)
            yield " %04d %04d %s%s  %04d %04d %04d   %5.3f   %04d  %4.2f" % (
                res.seq_nr,
                res.pdb_nr,
                res.chain_id,
                dist,
                res.nocc,
                res.ndel,
                res.nins,
                res.entropy,
                res.relative_entropy,
                res.cons_weight,
            )

    def insertion_lines(self, hits: Sequence[Hit]) -> Iterator[str]:
        yield INSERTION_TITLE
        yield INSERTION_HEADER
        width = self.insertion_line_width
        for nr, hit in enumerate(hits, start=1):
            for ins in hit.insertions:
                seq = ins.sequence
                yield "  %04d  %04d  %04d  %04d %s" % (
                    hit.rank or nr,
                    ins.query_pos,
                    ins.hit_pos,
                    ins.length,
                    seq[:width],
                )
                for offset in range(width, len(seq), width):
                    yield INSERTION_CONTINUATION + seq[offset:offset + width]


def format_protein_row(hit: Hit, rank: int) -> str:
    """Format one ``## PROTEINS`` row."""
    return "%05d : %-12.12s%4.4s    %4.2f  %4.2f %04d %04d %04d %04d %04d %04d %04d %04d  %-10.10s %s" % (
        rank,
        hit.id,
        hit.pdb_code,
        hit.ide,
        hit.wsim,
        hit.ifir,
        hit.ilas,
        hit.jfir,
        hit.jlas,
        hit.lali,
        hit.ngap,
        hit.lgap,
        hit.lseq2,
        hit.accession,
        hit.description,
    )


def parse_protein_row(line: str) -> ProteinRow:
    """Read back a row written by :func:`format_protein_row`."""
    return ProteinRow(
        rank=int(line[0:5]),
        id=line[8:20].rstrip(),
        pdb_code=line[20:24].strip(),
        ide=float(line[28:32]),
        wsim=float(line[34:38]),
        ifir=int(line[39:43]),
        ilas=int(line[44:48]),
        jfir=int(line[49:53]),
        jlas=int(line[54:58]),
        lali=int(line[59:63]),
        ngap=int(line[64:68]),
        lgap=int(line[69:73]),
        lseq2=int(line[74:78]),
        accession=line[80:90].rstrip(),
        description=line[91:],
    )


def read_protein_table(text: str) -> List[ProteinRow]:
    """Parse the ``## PROTEINS`` table out of a report."""
    rows: List[ProteinRow] = []
    in_table = False

    for line in text.splitlines():
        if line.startswith("## PROTEINS"):
            in_table = True
            continue
        if not in_table or line.startswith("  NR."):
            continue
        if not line.strip() or line.startswith("##") or line == "//":
            break
        rows.append(parse_protein_row(line))

    return rows
