"""Packaged benchmark fixtures."""

FIXTURE_NAME = "square_1374.jpg"
