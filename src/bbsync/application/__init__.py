"""Application layer: sync orchestration and store services."""
