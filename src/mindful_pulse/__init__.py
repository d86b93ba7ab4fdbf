"""MindfulPulse: data-collection lifecycle core for the wellness journal."""

__version__ = "0.1.0"
