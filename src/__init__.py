"""
ClimbingPill Metrics - training analytics for climbing athletes.

This package contains the complete application:
- core: Framework-agnostic metrics derivation engine
- infrastructure: Record sources (CSV exports, in-memory)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
