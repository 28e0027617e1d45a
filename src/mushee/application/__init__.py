"""Application layer - services and use cases."""
