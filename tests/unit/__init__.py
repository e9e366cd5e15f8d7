"""Unit tests for the election portal.

Covers the ballot workflow engine, results tabulation, the shared selection
helpers and models, and the election API client. No running services are
needed.
"""
