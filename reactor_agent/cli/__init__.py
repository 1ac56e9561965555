"""
Command-line interface for the reactor agent.
"""

from .main import main

__all__ = ['main']
