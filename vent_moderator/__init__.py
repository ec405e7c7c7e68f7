"""
Anonymous vent moderation service: submission, admin review, sequential
publication and threaded comments.
"""

__version__ = "0.1.0"
