"""Bundled data files for bucketctl."""
