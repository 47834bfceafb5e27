# metatx_tools/core/__init__.py
"""
Batch drivers: building studies, batch differential analysis, diversity tests.
"""

from metatx_tools.core.pipeline import (
    build_studies,
    run_batch_differential,
    run_study_differential,
    run_diversity_tests
)
