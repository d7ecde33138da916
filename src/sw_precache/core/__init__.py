"""Core helpers shared by the build stages."""
