"""
Voxa - turns continuous speech transcripts into tool calls against a
desktop of windows.
"""

__version__ = "0.1.0"
