"""
Election portal: ballot workflow and results tabulation over a remote election API.

Subpackages:
- shared: Position/Candidate records and selection-validation helpers
- ballot: Ballot workflow engine
- results: Results snapshot records and tabulation
- portal: Settings, election API client and the FastAPI service
"""

__version__ = '1.0.0'
