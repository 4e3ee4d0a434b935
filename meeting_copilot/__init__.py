"""
Meeting Copilot: live meeting transcription, suggestions and summaries
"""

__version__ = "1.0.0"
