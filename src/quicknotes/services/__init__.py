"""Service layer for quicknotes."""
