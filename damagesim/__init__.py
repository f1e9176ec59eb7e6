"""Damage simulation studio: prompt, compression and caching around an image model."""
