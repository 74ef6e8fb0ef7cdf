"""bucketctl - a bucket-based package manager for portable applications."""

__version__ = "0.1.0"
