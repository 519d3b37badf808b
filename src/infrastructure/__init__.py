"""
Infrastructure layer - external data integrations.

Each subdirectory wraps an external dependency:
- sources: Spreadsheet exports the training app produces

These wrappers translate between external formats and the raw rows the
metrics normalizer consumes.
"""
