"""
Scope build algorithms.

This module contains the graph ordering, initialization scheduling and
disposal steps a scope runs over its descriptors and instances.
"""

from .graph_builder import DependencyGraph, sort_descriptors
from .initialization import InitializationPlan, plan_initialization, run_initialization
from .disposal import dispose_owned

__all__ = [
    "DependencyGraph",
    "sort_descriptors",
    "InitializationPlan",
    "plan_initialization",
    "run_initialization",
    "dispose_owned",
]
