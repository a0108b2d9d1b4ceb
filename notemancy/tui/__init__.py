"""
Terminal user interface for interactive note selection.
"""
