"""
PR Consensus - team reviewer assignment and approval consensus checks for GitHub
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
