"""
notemancy - vault-based personal knowledge base.
Semantic indexing of vault notes and fuzzy note selection.
"""

__version__ = "0.1.0"
