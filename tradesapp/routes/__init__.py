"""Top-level API routes"""
