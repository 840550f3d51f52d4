"""
Dishfinder Data
===============

Loaders for seed recipe datasets.
"""

from .loaders import load_seed_recipes, parse_recipe

__all__ = ["load_seed_recipes", "parse_recipe"]
