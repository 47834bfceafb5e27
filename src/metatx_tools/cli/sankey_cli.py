#!/usr/bin/env python3
"""
metatx-tools sankey

Writes the Sankey link table of one study between two taxonomic ranks.

Example:
  metatx-tools sankey --data-dir data --study SRP000001 --source Phylum --target Genus \
                      --output phylum_genus_links.csv
  metatx-tools sankey --data-dir data --study SRP000001 --source Family --target Species \
                      --filter Bacteroidetes --level-filter Phylum --output links.csv
"""

import sys
import argparse
import logging

from metatx_tools.analysis.sankey import MIN_LINK_VALUE, sankey_links_dataset
from metatx_tools.cli.common import add_common_args, config_from_args, logger_from_args
from metatx_tools.dataset.io import load_dataset
from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS

logger = logging.getLogger('metatx_tools')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Export Sankey links between two taxonomic ranks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--study", required=True, help="Study ID")
    parser.add_argument("--source", required=True, choices=LINEAGE_COLUMNS, help="Source rank")
    parser.add_argument("--target", required=True, choices=LINEAGE_COLUMNS, help="Target rank")
    parser.add_argument("--filter", dest="source_filter", help="Keep only taxa with this label")
    parser.add_argument("--level-filter", choices=LINEAGE_COLUMNS,
                        help="Rank the filter applies to (default: source rank)")
    parser.add_argument("--min-value", type=float, default=MIN_LINK_VALUE,
                        help=f"Drop links with Value <= this percentage (default: {MIN_LINK_VALUE})")
    parser.add_argument("--output", required=True, help="Output CSV file")
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = config_from_args(args)
    logger_from_args(args, config)

    dataset = load_dataset(args.study, config.data_dir)
    if dataset is None:
        return 1

    links = sankey_links_dataset(
        dataset,
        args.source,
        args.target,
        source_filter=args.source_filter,
        level_filter=args.level_filter,
        min_value=args.min_value,
    )
    links.to_csv(args.output, index=False)
    logger.info(f"Saved {len(links)} links from {args.source} to {args.target}: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
