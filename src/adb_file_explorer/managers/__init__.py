"""Coordinators sitting between the presentation layer and the core."""
