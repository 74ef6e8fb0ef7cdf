"""Core engine of bucketctl: catalog, resolution, sync and state."""
