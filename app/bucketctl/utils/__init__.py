"""Utility modules for bucketctl."""
