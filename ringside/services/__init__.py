"""
Services package for the show simulation engine.
"""

from .locks import EntityLockRegistry
from .lineage import TitleLineageTracker
from .notifier import ShowNotifier

__all__ = ['EntityLockRegistry', 'TitleLineageTracker', 'ShowNotifier']
