# metatx_tools/dataset/__init__.py
"""Per-study datasets and their storage."""

from metatx_tools.dataset.phylo import (
    MicrobiomeDataset,
    generate_dataset,
    get_attributes,
    parse_attribute_string,
    parse_sample_attributes
)

from metatx_tools.dataset.io import (
    load_dataset,
    read_dataset,
    save_dataset,
    load_study_info,
    write_study_info
)
