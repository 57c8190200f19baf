"""
HTTP API for Contract Studio.
"""
