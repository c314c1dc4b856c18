"""
Setup.py for backwards compatibility with older tooling.
"""
from setuptools import setup, find_packages

setup(
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    zip_safe=False,
    # All other metadata is in pyproject.toml
)
