"""Sourcing pipeline: requirements, track, ranking, assembly, delivery."""
