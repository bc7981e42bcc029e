"""Data models for quicknotes."""
