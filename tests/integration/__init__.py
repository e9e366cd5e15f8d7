"""Integration tests for the election portal.

These tests drive the FastAPI app in-process, with the remote election API
replaced by an in-memory fake:

- Ballot load, navigation and submission
- Results tabulation over HTTP
- Administrator actions and position validation
- Health and metrics endpoints
"""

__version__ = "1.0.0"
