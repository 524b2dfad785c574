"""Building blocks for terminal progress output: formatting, draw targets and multi-bar layout."""

__version__ = "0.1.0"
__all__ = ["format", "terminal", "draw_target", "multi_state", "multi"]