"""
SightSignal - signal matching and ranking engine.

Users define signals (persistent watches over an area plus content
conditions). The engine decides which signals a new sighting matches and
orders a user's signals by a personalized rank score.
"""

__version__ = "0.4.0"
