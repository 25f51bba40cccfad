"""Decoders for game-server file formats."""
