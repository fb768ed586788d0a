"""MemoryFlow services."""
