"""Report generation pipeline orchestration.

Implements the conversion from chain alignments to an HSSP report:
1. Drop chains shorter than the minimum length
2. Cluster chain sequences by containment
3. Obtain one alignment per representative chain
4. Build hits, weights, conservation and residue profiles per chain
5. Merge chains, rank hits and format the report

Per-chain state (alignment, weight matrix, hit list, residue list) stays
local to :meth:`HSSPPipeline.process_chain` until the merge.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, TextIO, Tuple, Union

from hsspgen.alignment.clustering import SequenceClusterer
from hsspgen.alignment.msa import Alignment
from hsspgen.config import HSSPConfig
from hsspgen.constants.matrices import load_substitution_matrix
from hsspgen.exceptions import FormatError, HSSPError
from hsspgen.output.hssp import ReportFormatter, ReportHeader
from hsspgen.processing.conservation import ConservationScorer, WeightMatrix
from hsspgen.processing.hits import Hit, HitBuilder, rank_hits
from hsspgen.processing.profile import (
    ChainResidue,
    ResidueHInfo,
    ResidueProfileBuilder,
    residues_from_sequence,
)
from hsspgen.search.databank import Databank
from hsspgen.search.sources import AlignmentSource


logger = logging.getLogger(__name__)

UNIREF100_PREFIX = "UniRef100_"
UNKNOWN_PDB_ID = "UNKN"


@dataclass
class PipelineStats:
    """Statistics for one pipeline run."""
    total_chains: int = 0
    short_chains: int = 0
    representatives: int = 0
    processed_chains: int = 0
    failed_chains: int = 0
    hits_built: int = 0
    hits_reported: int = 0
    databank_misses: int = 0

    errors: List[str] = field(default_factory=list)


@dataclass
class ChainInput:
    """One chain of the protein to report on.

    Attributes:
        chain_id: Single-letter chain identifier
        residues: Chain residues in sequence order
    """
    chain_id: str
    residues: List[ChainResidue]

    @property
    def sequence(self) -> str:
        return "".join(r.letter for r in self.residues)

    def __len__(self) -> int:
        return len(self.residues)

    @classmethod
    def from_sequence(cls, sequence: str, chain_id: str = "A") -> "ChainInput":
        """Chain with residues numbered 1..n."""
        return cls(chain_id=chain_id, residues=residues_from_sequence(sequence))


@dataclass
class ChainResult:
    """Chain-local output of :meth:`HSSPPipeline.process_chain`."""
    chain: ChainInput
    alignment: Alignment
    hits: List[Hit]
    residues: List[ResidueHInfo]


@dataclass
class HSSPReport:
    """A merged, ranked report ready for formatting."""
    header: ReportHeader
    hits: List[Hit]
    residues: List[ResidueHInfo]

    @property
    def nalign(self) -> int:
        return len(self.hits)


class HSSPPipeline:
    """Full report pipeline.

    Args:
        config: Pipeline configuration
        databank: Optional databank for hit titles, accessions and lengths
        source: Optional alignment source used when no alignments are given
    """

    def __init__(
        self,
        config: Optional[HSSPConfig] = None,
        databank: Optional[Databank] = None,
        source: Optional[AlignmentSource] = None,
    ):
        self.config = config or HSSPConfig()
        self.databank = databank
        self.source = source

        # Initialize components
        self.clusterer = SequenceClusterer()
        self.hit_builder = HitBuilder(
            policy=self.config.hits.trim_policy,
            matrix=load_substitution_matrix(self.config.hits.substitution_matrix),
            apply_threshold=self.config.hits.apply_threshold,
        )
        self.formatter = ReportFormatter(
            block_width=self.config.report.block_width,
            insertion_line_width=self.config.report.insertion_line_width,
            version=self.config.report.version,
            contact=self.config.report.contact,
        )

        # Stats
        self.stats = PipelineStats()

    def process_chain(self, chain: ChainInput, alignment: Alignment) -> ChainResult:
        """Build hits and the residue profile of one chain.

        Residue entries are numbered from 1; :meth:`merge` renumbers them.

        Raises:
            AlignmentError: If the alignment cannot be fitted to the chain
            FormatError: If a hit row lacks its position suffix
        """
        alignment = alignment.fit_to_chain(chain.sequence)

        hits = self.hit_builder.build_all(alignment, chain_id=chain.chain_id)
        self.stats.hits_built += len(hits)

        weights = WeightMatrix.from_alignment(alignment)
        scorer = ConservationScorer(alignment, weights)
        residues = ResidueProfileBuilder(scorer).build(
            hits,
            chain.residues,
            chain_id=chain.chain_id,
        )

        logger.info(
            "Chain %s: %d of %d alignment rows kept",
            chain.chain_id,
            len(hits),
            alignment.depth - 1,
        )
        return ChainResult(chain=chain, alignment=alignment, hits=hits, residues=residues)

    def annotate(self, hits: Sequence[Hit]) -> None:
        """Fill title, accession and length of each hit from the databank.

        A hit without a databank entry keeps its alignment description and
        an empty accession.
        """
        for hit in hits:
            if self.databank is not None:
                try:
                    entry = self.databank.lookup(hit.id)
                except KeyError:
                    self.stats.databank_misses += 1
                    logger.warning("Could not find %s in %s", hit.id, self.databank.version)
                else:
                    hit.description = entry.title
                    hit.accession = entry.accession
                    if entry.length > 0:
                        hit.lseq2 = entry.length

            if hit.id.startswith(UNIREF100_PREFIX):
                hit.id = hit.id[len(UNIREF100_PREFIX):]
                hit.accession = hit.id

    @staticmethod
    def merge(results: Sequence[ChainResult]) -> List[ResidueHInfo]:
        """Concatenate residue lists, separated by chain-break sentinels.

        Entries are renumbered consecutively across chains.
        """
        merged: List[ResidueHInfo] = []
        for result in results:
            if merged:
                merged.append(ResidueHInfo.chain_break(len(merged) + 1))
            for residue in result.residues:
                residue.seq_nr = len(merged) + 1
                merged.append(residue)
        return merged

    def run(
        self,
        chains: Sequence[ChainInput],
        alignments: Optional[Mapping[str, Alignment]] = None,
        pdb_id: str = UNKNOWN_PDB_ID,
        description: Optional[Dict[str, str]] = None,
        min_seq_length: Optional[int] = None,
    ) -> HSSPReport:
        """Build the merged report for ``chains``.

        Args:
            chains: Chains of the protein
            alignments: Alignment per chain id; when omitted chains are
                clustered and the alignment source is asked once per
                representative
            pdb_id: Identifier written to ``PDBID``
            description: ``HEADER``/``COMPND``/``SOURCE``/``AUTHOR`` lines
            min_seq_length: Overrides the configured minimum chain length

        Raises:
            FormatError: If no chain is long enough
            HSSPError: If a chain fails and failed chains are not skipped,
                or if every chain fails
        """
        min_length = self.config.min_seq_length if min_seq_length is None else min_seq_length
        self.stats.total_chains += len(chains)

        candidates = []
        for chain in chains:
            if len(chain) < min_length:
                self.stats.short_chains += 1
                logger.info("Skipping chain %s: %d residues", chain.chain_id, len(chain))
                continue
            candidates.append(chain)

        if not candidates:
            raise FormatError(f"Not enough sequences in PDB file of length {min_length}")

        if alignments is None:
            work = self._cluster(candidates)
        else:
            work = [(chain, alignments[chain.chain_id]) for chain in candidates
                    if chain.chain_id in alignments]
            self.stats.representatives += len(work)

        results: List[ChainResult] = []
        last_error: Optional[HSSPError] = None

        for chain, alignment in work:
            try:
                if alignment is None:
                    alignment = self._search(chain)
                results.append(self.process_chain(chain, alignment))
                self.stats.processed_chains += 1
            except HSSPError as e:
                if not self.config.skip_failed_chains:
                    raise
                last_error = e
                self.stats.failed_chains += 1
                self.stats.errors.append(f"{pdb_id}/{chain.chain_id}: {e}")
                logger.error("Failed to process chain %s: %s", chain.chain_id, e)
                logger.debug(traceback.format_exc())

        if not results:
            if last_error is not None:
                raise last_error
            raise FormatError("No alignment available for any chain")

        hits = [hit for result in results for hit in result.hits]
        self.annotate(hits)
        hits = rank_hits(hits, self.config.hits.max_hits)
        self.stats.hits_reported += len(hits)

        header = ReportHeader(
            pdb_id=pdb_id,
            databank_version=self.databank.version if self.databank is not None else "",
            seq_length=sum(len(result.chain) for result in results),
            nchain=len(candidates),
            used_chains=[result.chain.chain_id for result in results],
            description=dict(description or {}),
        )

        logger.info(
            "Report for %s: %d chains, %d hits",
            pdb_id,
            header.kchain,
            len(hits),
        )
        return HSSPReport(header=header, hits=hits, residues=self.merge(results))

    def run_sequence(
        self,
        sequence: str,
        alignment: Optional[Alignment] = None,
    ) -> HSSPReport:
        """Report for a bare sequence: chain ``A``, PDB id ``UNKN``."""
        chain = ChainInput.from_sequence(sequence)
        alignments = {chain.chain_id: alignment} if alignment is not None else None
        return self.run([chain], alignments, pdb_id=UNKNOWN_PDB_ID, min_seq_length=0)

    def format(self, report: HSSPReport) -> str:
        return self.formatter.format(report.header, report.hits, report.residues)

    def write(self, report: HSSPReport, out: Union[TextIO, str, Path]) -> None:
        """Write ``report`` to a stream or a file path."""
        if isinstance(out, (str, Path)):
            with open(out, "w") as f:
                self.formatter.write(f, report.header, report.hits, report.residues)
        else:
            self.formatter.write(out, report.header, report.hits, report.residues)

    def _cluster(
        self, chains: Sequence[ChainInput]
    ) -> List[Tuple[ChainInput, Optional[Alignment]]]:
        """Representative chains, each paired with a pending alignment."""
        clusters = self.clusterer.cluster([chain.sequence for chain in chains])
        self.stats.representatives += len(clusters.representatives)

        for rep in clusters.representatives:
            members = [chains[i].chain_id for i in clusters.members(rep) if i != rep]
            if members:
                logger.info(
                    "Chains %s are part of chain %s",
                    ",".join(members),
                    chains[rep].chain_id,
                )

        return [(chains[rep], None) for rep in clusters.representatives]

    def _search(self, chain: ChainInput) -> Alignment:
        if self.source is None:
            raise FormatError(f"No alignment source for chain {chain.chain_id}")
        logger.info("Searching alignment for chain %s", chain.chain_id)
        return self.source.submit(chain.sequence, chain.chain_id)


def create_pipeline(
    config_path: Optional[str] = None,
    databank: Optional[Databank] = None,
    source: Optional[AlignmentSource] = None,
) -> HSSPPipeline:
    """Create a pipeline from configuration.

    Args:
        config_path: Optional path to config file
        databank: Optional databank collaborator
        source: Optional alignment source

    Returns:
        Configured HSSPPipeline
    """
    if config_path:
        config = HSSPConfig.from_yaml(config_path)
    else:
        config = HSSPConfig()

    return HSSPPipeline(config, databank=databank, source=source)
