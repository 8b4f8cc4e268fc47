"""AI Animation Engine - prompt to Manim animation video generation."""

__version__ = "0.1.0"
