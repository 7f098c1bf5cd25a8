"""Serve a directory tree as an OPDS 1.1 e-book catalog."""
