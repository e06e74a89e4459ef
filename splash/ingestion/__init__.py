"""Ticker feed sources."""
