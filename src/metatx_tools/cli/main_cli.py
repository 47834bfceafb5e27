#!/usr/bin/env python3
"""
metatx-tools - exploratory metatranscriptomic analysis per study

Available Commands:
  build       - Build per-study datasets from count, sample and feature tables
  diff        - Batch differential expression for all studies
  sankey      - Export Sankey links between two taxonomic ranks
  diversity   - Shannon diversity ANOVA per sample attribute

Example Usage:
  metatx-tools build --counts counts.csv --sample-info sample_info.csv --feature-info feature_info.csv
  metatx-tools diff --data-dir data --results-dir results
  metatx-tools sankey --study SRP000001 --source Phylum --target Genus --output links.csv
  metatx-tools diversity --studies SRP000001

For more information on any command, use:
  metatx-tools [command] --help
"""

import sys
import argparse
import logging
import warnings

from metatx_tools.cli import build_cli, diff_cli, diversity_cli, sankey_cli

logger = logging.getLogger('metatx_tools')

COMMANDS = {
    'build': build_cli.main,
    'diff': diff_cli.main,
    'sankey': sankey_cli.main,
    'diversity': diversity_cli.main,
}


def print_help():
    parser = argparse.ArgumentParser(
        prog="metatx-tools",
        description="metatx-tools - exploratory metatranscriptomic analysis per study",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.print_help()


def main(argv=None):
    """
    Main entry point for the metatx-tools CLI.

    Dispatches to the command module with the remaining arguments.
    """
    warnings.filterwarnings("ignore", category=FutureWarning)
    warnings.filterwarnings("ignore", category=DeprecationWarning)

    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv or argv[0] in ('-h', '--help'):
        print_help()
        return 0

    command, args = argv[0], argv[1:]
    if command not in COMMANDS:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
        logger.error(f"Unknown command: {command}")
        print_help()
        return 1

    return COMMANDS[command](args)


if __name__ == "__main__":
    sys.exit(main())
