"""Tests for the HSSP report writer."""

import io
from datetime import date

import pytest

from hsspgen.constants.residues import PROFILE_ALPHABET


@pytest.fixture
def databank():
    """Databank knowing two of the three sample hits."""
    from hsspgen.search.databank import DatabankEntry, InMemoryDatabank

    return InMemoryDatabank(
        {
            "hit1": DatabankEntry(title="First protein", accession="Q11111", length=120),
            "UniRef100_P12345": DatabankEntry(title="Second protein"),
        },
        version="uniprot-2026_01",
    )


@pytest.fixture
def report(databank, sample_alignment, query_sequence, test_date):
    """Merged report of the sample alignment."""
    from hsspgen.pipeline.pipeline import HSSPPipeline

    pipeline = HSSPPipeline(databank=databank)
    report = pipeline.run_sequence(query_sequence, sample_alignment)
    report.header.generated = test_date
    return report


@pytest.fixture
def report_text(report):
    """The sample report, formatted."""
    from hsspgen.output.hssp import ReportFormatter

    return ReportFormatter().format(report.header, report.hits, report.residues)


def _single_residue(nocc: int = 1):
    from hsspgen.processing.profile import ResidueHInfo, default_dssp_fragment

    return ResidueHInfo(
        seq_nr=1,
        letter="M",
        chain_id="A",
        dssp=default_dssp_fragment(1, "A", "M"),
        pdb_nr=1,
        column=0,
        nocc=nocc,
        cons_weight=1.0,
        distribution={"M": 100},
    )


class TestReportHeader:
    """Tests for the header block."""

    def test_header_lines(self, report_text):
        """Test the fixed header lines."""
        lines = report_text.splitlines()

        assert lines[0] == "HSSP       HOMOLOGY DERIVED SECONDARY STRUCTURE OF PROTEINS , VERSION 2.0"
        assert lines[1] == "PDBID      UNKN"
        assert lines[2] == "DATE       file generated on 2021-09-30"
        assert lines[3] == "SEQBASE    uniprot-2026_01"
        assert lines[4] == "THRESHOLD  according to: t(L)=(290.15 * L ** -0.562) + 5"
        assert lines[5].startswith("CONTACT    ")
        assert lines[6] == "SEQLENGTH  0030"
        assert lines[7] == "NCHAIN     0001 chain(s) in UNKN data set"
        assert lines[8] == "NALIGN     0003"
        assert not any(line.startswith("KCHAIN") for line in lines)

    def test_kchain_and_description(self, test_date):
        """Test the optional KCHAIN and description lines."""
        from hsspgen.output.hssp import ReportFormatter, ReportHeader

        header = ReportHeader(
            pdb_id="1ABC",
            seq_length=120,
            nchain=2,
            used_chains=["A"],
            description={"HEADER": "HYDROLASE", "COMPND": "MOL_ID: 1"},
            generated=test_date,
        )
        lines = list(ReportFormatter().header_lines(header, 0))

        assert lines.index("HEADER     HYDROLASE") == 6
        assert lines[7] == "COMPND     MOL_ID: 1"
        assert lines[8] == "SEQLENGTH  0120"
        assert "NCHAIN     0002 chain(s) in 1ABC data set" in lines
        assert "KCHAIN     0001 chain(s) used here ; chains(s) : A" in lines

    def test_terminator(self, report_text):
        """Test that the report ends with //."""
        assert report_text.endswith("\n//\n")


class TestProteinTable:
    """Tests for the ## PROTEINS table."""

    def test_rows(self, report_text):
        """Test ranking and annotation of the rows."""
        from hsspgen.output.hssp import read_protein_table

        rows = read_protein_table(report_text)

        assert [row.rank for row in rows] == [1, 2, 3]
        assert [row.id for row in rows] == ["P12345", "hit1", "hit3"]
        assert rows[0].accession == "P12345"
        assert rows[0].description == "Second protein"
        assert rows[1].accession == "Q11111"
        assert rows[1].lseq2 == 120
        # not in the databank: alignment description, no accession
        assert rows[2].accession == ""
        assert rows[2].description == "Third homologue"

    def test_round_trip(self, report, report_text):
        """Test that parsed rows reproduce the hit statistics."""
        from hsspgen.output.hssp import read_protein_table

        rows = read_protein_table(report_text)
        for hit, row in zip(report.hits, rows):
            assert row.ide == pytest.approx(round(hit.ide, 2))
            assert row.wsim == pytest.approx(round(hit.wsim, 2))
            assert (row.ifir, row.ilas, row.jfir, row.jlas) == (hit.ifir, hit.ilas, hit.jfir, hit.jlas)
            assert (row.lali, row.ngap, row.lgap, row.lseq2) == (hit.lali, hit.ngap, hit.lgap, hit.lseq2)

    def test_reformat_is_idempotent(self, report, report_text):
        """Test that formatting the same report twice gives identical text."""
        from hsspgen.output.hssp import ReportFormatter

        again = ReportFormatter().format(report.header, report.hits, report.residues)
        assert again == report_text

    def test_row_layout(self):
        """Test column positions of a protein row."""
        from hsspgen.output.hssp import format_protein_row, parse_protein_row
        from hsspgen.processing.hits import Hit

        hit = Hit(
            source_index=1,
            id="sp|P12345|LONG_NAME",
            pdb_code="1abc",
            ide=0.5,
            wsim=0.75,
            ifir=1, ilas=98, jfir=3, jlas=100, lali=96, ngap=1, lgap=2, lseq2=250,
            accession="P12345",
            description="Some protein",
        )
        line = format_protein_row(hit, 7)

        assert line.startswith("00007 : sp|P12345|LO1abc    0.50  0.75 0001 0098")
        row = parse_protein_row(line)
        assert row.id == "sp|P12345|LO"
        assert row.pdb_code == "1abc"
        assert row.lseq2 == 250
        assert row.description == "Some protein"


class TestAlignmentBlocks:
    """Tests for the ## ALIGNMENTS blocks."""

    def test_residue_rows(self, report_text):
        """Test nocc, variability and aligned letters."""
        from hsspgen.output.hssp import ALIGNMENT_HEADER
        from hsspgen.processing.profile import default_dssp_fragment

        lines = report_text.splitlines()
        start = lines.index("## ALIGNMENTS 0001 - 0003")

        assert lines[start + 1] == ALIGNMENT_HEADER + "".join(
            "....:....%d" % d for d in range(1, 8)
        )
        assert lines[start + 2] == " 00001" + default_dssp_fragment(1, "A", "M") + "0003 0000  MM "
        assert lines[start + 21] == " 00020" + default_dssp_fragment(20, "A", "A") + "0004 0000  aAA"
        assert lines[start + 13].startswith(" 00012")
        assert lines[start + 14][6 + 34:].startswith("0004 0044  ")

    def test_blocks_and_ruler(self):
        """Test that hits are split into blocks with a shifted ruler."""
        from hsspgen.output.hssp import ALIGNMENT_HEADER, ReportFormatter, ReportHeader
        from hsspgen.processing.hits import Hit

        hits = [
            Hit(source_index=i, id=f"h{i}", rank=i + 1, aligned="M", last_column=0, lali=1, ide=1.0)
            for i in range(12)
        ]
        text = ReportFormatter(block_width=10).format(ReportHeader(), hits, [_single_residue(13)])
        lines = text.splitlines()

        first = lines.index("## ALIGNMENTS 0001 - 0010")
        second = lines.index("## ALIGNMENTS 0011 - 0012")
        assert lines[first + 1] == ALIGNMENT_HEADER + "....:....1"
        assert lines[second + 1] == ALIGNMENT_HEADER + "....:....2"
        assert lines[first + 2].endswith("  " + "M" * 10)
        assert lines[second + 2].endswith("  MM")

    def test_other_chain_is_blank(self):
        """Test that a hit of another chain shows no letter."""
        from hsspgen.output.hssp import ReportFormatter
        from hsspgen.processing.hits import Hit

        hits = [
            Hit(source_index=1, chain_id="A", aligned="M", last_column=0, rank=1),
            Hit(source_index=2, chain_id="B", aligned="M", last_column=0, rank=2),
        ]
        lines = list(ReportFormatter().alignment_lines(hits, [_single_residue(2)]))
        assert lines[2].endswith("  M ")

    def test_chain_break_row(self):
        """Test the zeroed row of a chain break."""
        from hsspgen.output.hssp import BREAK_DSSP, ReportFormatter
        from hsspgen.processing.hits import Hit
        from hsspgen.processing.profile import ResidueHInfo

        hits = [Hit(source_index=1, aligned="M", last_column=0, rank=1)]
        residues = [_single_residue(2), ResidueHInfo.chain_break(2)]
        lines = list(ReportFormatter().alignment_lines(hits, residues))

        assert lines[3] == " 00002" + BREAK_DSSP + "   0    0"

    def test_no_hits_no_blocks(self):
        """Test that an empty hit list writes no alignment block."""
        from hsspgen.output.hssp import ReportFormatter

        assert list(ReportFormatter().alignment_lines([], [_single_residue()])) == []


class TestProfileTable:
    """Tests for the ## SEQUENCE PROFILE AND ENTROPY table."""

    def test_profile_row(self, report_text):
        """Test distribution and counts of an L/I column."""
        line = next(l for l in report_text.splitlines() if l.startswith(" 0013 0013 A"))

        dist = line[12:12 + 4 * len(PROFILE_ALPHABET)]
        groups = [dist[i:i + 4] for i in range(0, len(dist), 4)]
        assert groups[PROFILE_ALPHABET.index("L")] == "0075"
        assert groups[PROFILE_ALPHABET.index("I")] == "0025"
        assert sum(int(g) for g in groups) == 100

        fields = line[12 + 4 * len(PROFILE_ALPHABET):].split()
        assert fields[:5] == ["0004", "0000", "0000", "0.562", "0019"]

    def test_break_row(self):
        """Test the zeroed profile row of a chain break."""
        from hsspgen.output.hssp import ReportFormatter
        from hsspgen.processing.profile import ResidueHInfo

        lines = list(ReportFormatter().profile_lines([ResidueHInfo.chain_break(31)]))
        assert lines[2].startswith("00031")
        assert lines[2].split()[1:21] == ["0"] * 20


class TestInsertionList:
    """Tests for the ## INSERTION LIST section."""

    def test_insertion_row(self, report_text):
        """Test the single insertion of the sample alignment."""
        lines = report_text.splitlines()
        start = lines.index("## INSERTION LIST")

        assert lines[start + 2] == "  0001  0020  0022  0002 aGGk"
        assert lines[start + 3] == "//"

    def test_wrapping(self):
        """Test continuation lines for long insertions."""
        from hsspgen.output.hssp import INSERTION_CONTINUATION, ReportFormatter
        from hsspgen.processing.hits import Hit, Insertion

        sequence = "a" + "G" * 228 + "k"
        hit = Hit(source_index=1, rank=1, insertions=[Insertion(5, 7, sequence)])

        out = io.StringIO()
        for line in ReportFormatter().insertion_lines([hit]):
            out.write(line + "\n")
        lines = out.getvalue().splitlines()

        assert lines[2] == "  0001  0005  0007  0228 " + sequence[:100]
        assert lines[3] == INSERTION_CONTINUATION + sequence[100:200]
        assert lines[4] == INSERTION_CONTINUATION + sequence[200:]
