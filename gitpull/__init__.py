"""
gitpull - Batch fast-forward pulls for registered local git clones.

This package keeps a list of local repositories and updates the selected
ones from their ``origin`` remote, fast-forwarding the configured branch
when possible and reporting anything that needs manual attention.
"""

__version__ = "1.0.0"
