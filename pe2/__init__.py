"""PE2 prompt optimizer - turns raw prompts into structured, iteratively refined prompts."""

__version__ = "0.1.0"
