"""LFS Migration Tool

Finds the repositories of a GitHub organization that use Git LFS, pulls them
with every LFS object and pushes them to another organization or host.
"""

__version__ = '0.1.0'

from .cli import main

__all__ = ['main']
