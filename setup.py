#!/usr/bin/env python3
"""
Setup script for ergosim - a harness for embarrassingly parallel Monte-Carlo simulations.

This package runs user-defined statistical samples on many independent nodes,
accumulates streaming mean/variance estimates and exports disjoint segments
that merge into cluster-wide results.
"""

from setuptools import setup, find_packages
import os

# Read the README file for long description
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "ergosim - distributed Monte-Carlo simulation harness"

setup(
    name="ergosim",
    version="0.1.0",
    author="ergosim Development Team",
    description="Harness for embarrassingly parallel Monte-Carlo simulations",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=['tests*', 'examples*']),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Physics",
        "Topic :: System :: Distributed Computing",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
    install_requires=[
        # Core dependencies that are always needed
        "numpy>=1.26.3",
        "pandas>=2.2.0",
        "scipy>=1.13.0",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "dev": [
            "pytest>=8.3.4",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords="monte carlo, statistics, simulation, distributed computing, welford",
)
