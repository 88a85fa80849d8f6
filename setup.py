#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Packaging for the pure legal translation core.

Ships three packages (config, core, engines) and the `purity` CLI module.
Runtime pins live in requirements.txt.
"""

import re
from pathlib import Path

from setuptools import setup, find_packages

ROOT = Path(__file__).parent


def read_version() -> str:
    init = (ROOT / "core" / "__init__.py").read_text(encoding="utf-8")
    return re.search(r'^__version__ = "([^"]+)"', init, re.MULTILINE).group(1)


def read_requirements(name: str = "requirements.txt") -> list:
    """Non-comment lines of a pip requirements file"""
    path = ROOT / name
    if not path.exists():
        return []
    return [
        line.strip()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]


test_requirements = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.21.0",
    "pytest-cov>=4.1.0",
]

setup(
    name="pure-legal-translation",
    version=read_version(),
    description="Cleaning, purity validation and tiered recovery for Arabic/French legal translation",
    author="Pure Legal Translation Team",
    python_requires=">=3.9",
    packages=find_packages(include=["config", "core", "engines"]),
    py_modules=["purity_cli"],
    install_requires=read_requirements(),
    extras_require={
        "test": test_requirements,
        "dev": test_requirements + ["black>=23.0.0", "flake8>=6.0.0"],
    },
    entry_points={
        "console_scripts": [
            "purity=purity_cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Legal Industry",
        "Natural Language :: Arabic",
        "Natural Language :: French",
        "Topic :: Text Processing :: Linguistic",
        "Programming Language :: Python :: 3",
    ],
    keywords="translation legal arabic french purity",
)
