"""
Potato Timer: progress tracking and motivation feed backend.
"""

__version__ = "1.0.0"
