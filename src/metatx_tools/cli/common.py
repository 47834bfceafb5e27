# metatx_tools/cli/common.py
"""Arguments and configuration shared by the metatx-tools commands."""

from metatx_tools.config import AnalysisConfig, load_config
from metatx_tools.logger import setup_logger


def add_common_args(parser):
    """Add configuration and logging options to a command parser."""
    parser.add_argument("--config",
                        help="YAML configuration file (values are overridden by command line options)")
    parser.add_argument("--data-dir",
                        help="Data directory holding study_info.csv and studies/")
    parser.add_argument("--log-file", help="Path to log file")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level")
    return parser


def config_from_args(args, **overrides):
    """Build the AnalysisConfig of a command from --config and its options."""
    config = load_config(args.config) if args.config else AnalysisConfig()
    return config.updated(data_dir=args.data_dir, log_file=args.log_file, **overrides)


def logger_from_args(args, config):
    return setup_logger(config.log_file, args.log_level)
