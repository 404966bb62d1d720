"""
Utility functions and helpers.

This package contains reusable utilities shared by the IT Glue jobs, the
Windows cleanup profiles and the CLI.

Modules:
- csvio: CSV input/output with normalized headers
- files: Directory and text file helpers
- logging: Console and job-log configuration
- progress: rich progress bars and summary panels
- redact: Secret scrubbing for logs and error messages
- retry: Exponential backoff with a delay cap
"""
