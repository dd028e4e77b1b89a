#!/usr/bin/env python
"""
Setup script for offer_scraper.
"""

import os

from setuptools import find_packages, setup

# Read the contents of README.md
with open("README.md", encoding="utf-8") as f:
    long_description = f.read()

# Read version from the package's _version.py
about = {}
with open(os.path.join("offer_scraper", "_version.py"), encoding="utf-8") as f:
    exec(f.read(), globals(), about)

# Read requirements from requirements.txt
with open("requirements.txt", encoding="utf-8") as f:
    requirements = [
        line.strip() for line in f if line.strip() and not line.startswith("#")
    ]

setup(
    name="offer_scraper",
    version=about["__version__"],
    description="Crawl product listings and keep the competing offers of every product up to date",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "offer-scraper=offer_scraper.__main__:main",
        ],
    },
)
