#!/usr/bin/env python3
"""
metatx-tools diff

Runs negative binomial differential expression for every pair of conditions
of every sample attribute, for each study in the study index, and writes one
CSV per comparison: <results-dir>/<study>_<attribute>_<cond1>_vs_<cond2>.csv

Example:
  metatx-tools diff --data-dir data --results-dir results
  metatx-tools diff --data-dir data --studies SRP000001 SRP000002 --max-samples 100
"""

import sys
import argparse
import logging

from metatx_tools.cli.common import add_common_args, config_from_args, logger_from_args
from metatx_tools.core.pipeline import run_batch_differential

logger = logging.getLogger('metatx_tools')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Batch differential expression analysis over all studies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--results-dir", help="Directory for result CSV files (default: results)")
    parser.add_argument("--studies", nargs="+", help="Study IDs to run (default: all in the index)")
    parser.add_argument("--max-samples", type=int,
                        help="Skip studies with more samples than this (default: 150)")
    parser.add_argument("--cooks-cutoff", type=float,
                        help="Cook's distance cutoff for outlier filtering (default: off)")
    parser.add_argument("--alpha", type=float, help="Significance threshold reported in the log")
    parser.add_argument("--quiet", action="store_true", help="Do not log per-study progress")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = config_from_args(
        args,
        results_dir=args.results_dir,
        max_samples=args.max_samples,
        cooks_cutoff=args.cooks_cutoff,
        alpha=args.alpha,
        log=False if args.quiet else None,
    )
    logger_from_args(args, config)
    logger.info("Starting differential analysis")

    try:
        results = run_batch_differential(config, studies=args.studies)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    if not results:
        logger.error("No study produced differential results")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
