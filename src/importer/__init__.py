"""Spreadsheet ingestion pipeline for bulk user creation.

Public API:
    UserImporter(db).run(content) -> ImportResult
"""

from importer.pipeline import UserImporter  # noqa: F401
