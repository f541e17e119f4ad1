"""Pari-mutuel prediction-market settlement core."""

__version__ = "0.1.0"
