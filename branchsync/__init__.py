"""
branchsync - keep local git branches in step with the remote branches they track.

This package resolves tracking relationships, measures how far a branch has
drifted from its remote counterpart, picks a single corrective action
(fast-forward, rebase, merge or abort) and provisions tracking relationships
without losing commits.
"""

__version__ = "1.0.0"
__author__ = "branchsync contributors"
__description__ = "Tracking-aware branch synchronization commands for git"

from .cli import main

__all__ = ["main"]
