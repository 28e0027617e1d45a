"""Infrastructure adapters - persistence, storage, identity, observability."""
