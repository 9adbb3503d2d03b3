"""
Recommendations Subsystem

Affinity scoring, row reordering with a discovery floor, dynamic and
personalized rails, and the engine facade that wires them to storage.
"""

from .affinity import compute_affinity, INTERACTION_WEIGHTS
from .reorder import reorder_rows, merge_categories_with_dynamic, ReorderOptions
from .dynamic_rails import DynamicRailManager, manage_dynamic_rails
from .personalized_rails import generate_personalized_rails, get_vetoed_ids
from .engine import PersonalizationEngine, build_engine

__all__ = [
    'compute_affinity',
    'INTERACTION_WEIGHTS',
    'reorder_rows',
    'merge_categories_with_dynamic',
    'ReorderOptions',
    'DynamicRailManager',
    'manage_dynamic_rails',
    'generate_personalized_rails',
    'get_vetoed_ids',
    'PersonalizationEngine',
    'build_engine',
]
