"""
Core business logic for climbing training analytics.

This module is framework-agnostic - it doesn't import FastAPI, file
readers, or any infrastructure concerns. The metrics can be computed
and tested in isolation from how records are loaded or served.
"""
