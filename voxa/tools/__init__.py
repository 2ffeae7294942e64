"""
Tools package for Voxa.
The tool catalogue: schemas advertised to the parser plus dispatch handlers.
"""
from voxa.tools.registry import build_default_registry

__all__ = ["build_default_registry"]
