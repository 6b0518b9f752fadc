"""
Setup script for tiny-stat.
"""

from setuptools import setup, find_packages

setup(
    name="tiny-stat",
    version="0.1.0",
    description="Single-pass streaming statistics with T-Digest quantiles",
    packages=find_packages(include=["tiny_stat", "tiny_stat.*"]),
    package_data={"tiny_stat": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=["matplotlib>=3.5"],
    extras_require={"test": ["pytest"]},
)
