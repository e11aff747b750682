"""
regression-gate - CI Regression Gate for Dashboard Metrics Reports

Judges a freshly produced metrics report against a committed baseline and
decides, deterministically, whether the build may pass.

Features:
- Card loading compliance gate (per-criterion pass rates, failure budget,
  zero-tolerance cards)
- All-card TTFI gate (per-mode p95, per-card ceiling and timeout budgets)
- Nearest-rank percentile statistics
- Diff-friendly Markdown summaries
- Environment-configurable report, baseline and summary paths
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else __doc__

setup(
    name="regression-gate",
    version="1.0.0",
    description="CI regression gate comparing metrics reports against committed baselines",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "*.tests", "*.tests.*", "tests.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "regression-gate=regression_gate.gate:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Quality Assurance",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    keywords="regression gate ci-cd performance compliance baseline",
)
