#!/usr/bin/env python3
"""
metatx-tools build

Builds one dataset per study from the raw tables and writes the study index.

Inputs:
  • counts CSV: features x samples, first column = feature ID
  • sample info CSV: one row per count column (same order) with the study ID,
    packed sample attributes ("key: value || key: value") and read depth
  • feature info CSV: first column = feature ID, with Lineage and Name columns

Example:
  metatx-tools build --counts counts.csv --sample-info sample_info.csv \
                     --feature-info feature_info.csv --data-dir data
"""

import sys
import argparse
import logging

from metatx_tools.cli.common import add_common_args, config_from_args, logger_from_args
from metatx_tools.core.pipeline import build_studies

logger = logging.getLogger('metatx_tools')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Build per-study datasets from count, sample and feature tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--counts", required=True, help="Count table CSV (features x samples)")
    parser.add_argument("--sample-info", required=True, help="Sample info CSV")
    parser.add_argument("--feature-info", required=True, help="Feature info CSV with Lineage and Name")
    parser.add_argument("--study-column", help="Sample info column with the study ID (default: study)")
    parser.add_argument("--attribute-column",
                        help="Sample info column with packed attributes (default: sample_attribute)")
    parser.add_argument("--read-depth-column",
                        help="Sample info column with total read depth (default: spots)")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = config_from_args(
        args,
        study_column=args.study_column,
        attribute_column=args.attribute_column,
        read_depth_column=args.read_depth_column,
    )
    logger_from_args(args, config)

    try:
        study_info = build_studies(args.counts, args.sample_info, args.feature_info, config)
    except (FileNotFoundError, ValueError, KeyError) as e:
        logger.error(f"Build failed: {str(e)}")
        return 1

    if study_info.empty:
        logger.error("No study could be built")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
