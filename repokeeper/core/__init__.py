"""Core lifecycle: snapshot store, eviction planning, signing, orchestration."""
