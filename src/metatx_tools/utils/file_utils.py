# metatx_tools/utils/file_utils.py
import os
import re
import logging


def check_file_exists(filepath, description):
    """Check if a file exists and is readable."""
    logger = logging.getLogger('metatx_tools')

    if not os.path.isfile(filepath):
        logger.error(f"ERROR: {description} file does not exist: {filepath}")
        return False

    if not os.access(filepath, os.R_OK):
        logger.error(f"ERROR: {description} file exists but is not readable: {filepath}")
        return False

    return True


def sanitize_filename(filename):
    """Replace invalid filename characters (and whitespace) with underscores."""
    return re.sub(r'[<>:"/\\|?*\s]', '_', filename)
