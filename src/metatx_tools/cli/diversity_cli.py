#!/usr/bin/env python3
"""
metatx-tools diversity

Tests whether Shannon diversity differs between the groups of sample
attributes (one-way ANOVA) for one or more studies.

Example:
  metatx-tools diversity --data-dir data --studies SRP000001 --output diversity.csv
  metatx-tools diversity --data-dir data --studies SRP000001 --attributes Sex disease
"""

import sys
import argparse
import logging
import traceback

import pandas as pd

from metatx_tools.cli.common import add_common_args, config_from_args, logger_from_args
from metatx_tools.core.pipeline import run_diversity_tests
from metatx_tools.dataset.io import load_dataset
from metatx_tools.logger import log_print

logger = logging.getLogger('metatx_tools')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Shannon diversity ANOVA per sample attribute",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--studies", nargs="+", required=True, help="Study IDs")
    parser.add_argument("--attributes", nargs="+",
                        help="Attributes to test (default: every attribute with 2+ values)")
    parser.add_argument("--output", help="Output CSV file (default: print to stdout)")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = config_from_args(args)
    logger_from_args(args, config)

    tables = []
    for study in args.studies:
        dataset = load_dataset(study, config.data_dir)
        if dataset is None:
            continue
        try:
            tables.append(run_diversity_tests(dataset, attributes=args.attributes))
        except Exception as e:
            logger.error(f"Error in diversity tests of study {study}: {str(e)}")
            logger.error(traceback.format_exc())

    if not tables:
        logger.error("No study could be tested")
        return 1

    results = pd.concat(tables, ignore_index=True)
    if args.output:
        results.to_csv(args.output, index=False)
        logger.info(f"Saved diversity test results: {args.output}")
    else:
        log_print(results.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
