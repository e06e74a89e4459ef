"""Splash evaluation, episode control, return tracking and notifications."""
