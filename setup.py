from setuptools import setup, find_packages

setup(
    name="metatx_tools",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        # Core data processing
        "pandas>=1.3.0",
        "numpy>=1.20.0",

        # Statistical and scientific libraries
        "scikit-bio>=0.5.7",
        "statsmodels>=0.13.0",

        # Configuration and utilities
        "PyYAML>=5.4",
        "tqdm>=4.62.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'metatx-tools=metatx_tools.cli.main_cli:main',
        ],
    },
    description="Exploratory microbiome and metatranscriptomic analysis utilities: lineage tables, per-study datasets, Sankey links, differential expression and diversity tests",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Intended Audience :: Science/Research",
    ],
    python_requires=">=3.8",
)
