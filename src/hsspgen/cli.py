"""Command-line interface for hsspgen.

Provides CLI commands for:
- Converting a Stockholm alignment into an HSSP report
- Running jackhmmer for a sequence and reporting the result
- Managing configuration files
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from hsspgen.alignment.stockholm import StockholmParser
from hsspgen.config import HSSPConfig
from hsspgen.exceptions import HSSPError
from hsspgen.pipeline.pipeline import ChainInput, HSSPPipeline, create_pipeline
from hsspgen.processing.hits import TrimPolicy
from hsspgen.search.databank import FastaDatabank
from hsspgen.search.sources import JackhmmerRunner


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def read_sequence(value: str) -> str:
    """Sequence given inline or as the path of a FASTA file."""
    if Path(value).exists():
        with open(value) as f:
            return "".join(line.strip() for line in f if not line.startswith(">"))
    return value.strip()


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert a Stockholm alignment command."""
    setup_logging(args.verbose)
    logger = logging.getLogger("hsspgen.cli")

    databank = None
    try:
        databank = FastaDatabank(args.fasta) if args.fasta else None
        pipeline = create_pipeline(args.config, databank=databank)
        if args.policy:
            pipeline.hit_builder.policy = TrimPolicy(args.policy)

        parser = StockholmParser(apply_threshold=pipeline.config.hits.apply_threshold)
        alignment = parser.parse_file(args.input)
        sequence = read_sequence(args.sequence) if args.sequence else alignment.query.sequence
        chain = ChainInput.from_sequence(sequence, chain_id=args.chain)

        logger.info(f"Converting {args.input}: {alignment.depth} sequences")
        report = pipeline.run(
            [chain],
            {chain.chain_id: alignment},
            pdb_id=args.pdb_id,
            min_seq_length=0,
        )
    except (HSSPError, FileNotFoundError) as e:
        logger.error(f"Conversion failed: {e}")
        return 1
    finally:
        if databank is not None:
            databank.close()

    if args.output:
        pipeline.write(report, args.output)
        logger.info(f"Saved to {args.output}")
    else:
        pipeline.write(report, sys.stdout)

    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Run jackhmmer and report command."""
    setup_logging(args.verbose)
    logger = logging.getLogger("hsspgen.cli")

    config = HSSPConfig.from_yaml(args.config) if args.config else HSSPConfig()
    updates = {
        key: value
        for key, value in (
            ("fasta_dir", args.fasta_dir),
            ("databank", args.databank),
            ("jackhmmer_binary", args.jackhmmer),
            ("iterations", args.iterations),
        )
        if value is not None
    }
    config.search = config.search.model_copy(update=updates)

    sequence = read_sequence(args.sequence)
    logger.info(f"Searching with sequence of length {len(sequence)}")

    try:
        runner = JackhmmerRunner(
            config.search,
            parser=StockholmParser(apply_threshold=config.hits.apply_threshold),
        )
        databank = FastaDatabank(runner.database_path, version=config.search.databank)
    except (HSSPError, FileNotFoundError) as e:
        logger.error(f"Search setup failed: {e}")
        return 1

    pipeline = HSSPPipeline(config, databank=databank, source=runner)
    try:
        report = pipeline.run_sequence(sequence)
    except HSSPError as e:
        logger.error(f"Search failed: {e}")
        return 1
    finally:
        databank.close()

    if args.output:
        pipeline.write(report, args.output)
        logger.info(f"Saved to {args.output}")
    else:
        pipeline.write(report, sys.stdout)

    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Configuration command."""
    setup_logging(args.verbose)

    if args.subcmd == "show":
        config = HSSPConfig.from_yaml(args.config) if args.config else HSSPConfig()
        print(yaml.dump(config.model_dump(mode="json"), default_flow_style=False))

    elif args.subcmd == "init":
        config = HSSPConfig()
        output_path = Path(args.output or "hsspgen.yaml")
        config.to_yaml(str(output_path))
        print(f"Created configuration file: {output_path}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="hsspgen",
        description="hsspgen - HSSP reports from multiple sequence alignments",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Convert command
    conv_parser = subparsers.add_parser(
        "convert",
        help="Convert a Stockholm alignment",
    )
    conv_parser.add_argument(
        "input",
        help="Input Stockholm file",
    )
    conv_parser.add_argument(
        "-s", "--sequence",
        help="Chain sequence or FASTA file (default: ungapped query row)",
    )
    conv_parser.add_argument(
        "--chain",
        default="A",
        help="Chain identifier",
    )
    conv_parser.add_argument(
        "--pdb-id",
        default="UNKN",
        help="Identifier written to PDBID",
    )
    conv_parser.add_argument(
        "--fasta",
        help="FASTA databank for hit titles and accessions",
    )
    conv_parser.add_argument(
        "-p", "--policy",
        choices=["profile", "score"],
        help="Hit trimming policy",
    )
    conv_parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    conv_parser.set_defaults(func=cmd_convert)

    # Search command
    search_parser = subparsers.add_parser(
        "search",
        help="Run jackhmmer and write a report",
    )
    search_parser.add_argument(
        "sequence",
        help="Sequence or FASTA file",
    )
    search_parser.add_argument(
        "--fasta-dir",
        help="Directory holding <databank>.fa",
    )
    search_parser.add_argument(
        "-d", "--databank",
        help="Databank name",
    )
    search_parser.add_argument(
        "-b", "--jackhmmer",
        help="Path to jackhmmer binary",
    )
    search_parser.add_argument(
        "-N", "--iterations",
        type=int,
        help="Number of jackhmmer iterations",
    )
    search_parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    search_parser.set_defaults(func=cmd_search)

    # Config command
    cfg_parser = subparsers.add_parser(
        "config",
        help="Configuration operations",
    )
    cfg_subparsers = cfg_parser.add_subparsers(dest="subcmd")

    cfg_subparsers.add_parser("show", help="Show configuration")
    cfg_init = cfg_subparsers.add_parser("init", help="Initialize config file")
    cfg_init.add_argument("-o", "--output", help="Output file path")

    cfg_parser.set_defaults(func=cmd_config)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
