"""
clickpkg — install/activate/remove engine for confined click packages.
"""

__version__ = "0.1.0"
