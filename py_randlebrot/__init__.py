"""
py-randlebrot: seeded planetary terrain and civilization generation.
"""

__version__ = "0.1.0"
