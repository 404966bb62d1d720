"""
msp-toolkit: administration tooling for managed service providers.

Consolidates the scripts an MSP technician reaches for every week into one
tested package with a single CLI.

Main features:
- IT Glue REST client with cursor pagination and capped exponential backoff
- Password hygiene audit with CSV, Markdown and HTML output
- Bulk configuration create/delete and manufacturer/model backfill from CSV
- Click-to-dial linkification of phone numbers in HTML
- Idempotent Windows cleanup profiles (CEIP, Bitdefender, Webroot, Dell)
- Disk-space reclamation for temp and update caches
"""

__version__ = "0.1.0"
