#!/usr/bin/env python3
"""Setup script for the recursive-solving self-play system."""

from setuptools import find_packages, setup

setup(
    name="rebel-kuhn",
    version="0.1.0",
    description="Depth-limited CFR with learned leaf values and a multithreaded self-play pipeline",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21",
        "torch>=2.0",
        "PyYAML>=6.0",
        "rich>=12.0",
        "zstandard>=0.18",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rebel-benchmark=rebel.cli.gen_benchmark:main",
        ],
    },
)
