"""
Nudge

A spoken task reminder: keeps a short list of time-of-day tasks and
announces countdowns, late warnings and encouragement through a local voice.
"""

__version__ = "0.1.0"
