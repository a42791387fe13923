"""Command-line interface for glcache."""
