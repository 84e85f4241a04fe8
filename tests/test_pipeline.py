"""Tests for the import orchestrator."""

from __future__ import annotations

from conftest import build_workbook, valid_rows
from importer import UserImporter
from schemas.importing import ImportErrorKind, ImportStage


class TestUserImporter:
    def test_success(self, db, user_count):
        result = UserImporter(db).run(build_workbook(valid_rows(3)))

        assert result.success
        assert result.stage == ImportStage.DONE
        assert result.kind is None
        assert result.imported == 3
        assert result.message == "Successfully imported 3 users"
        assert [u.email for u in result.users] == [
            "user0@example.com",
            "user1@example.com",
            "user2@example.com",
        ]
        assert user_count() == 3

    def test_structural_failure_stops_at_headers(self, db, user_count):
        content = build_workbook([["John", "john@example.com"]], columns=["firstName", "email"])
        result = UserImporter(db).run(content)

        assert not result.success
        assert result.stage == ImportStage.PARSING_HEADERS
        assert result.kind == ImportErrorKind.STRUCTURAL
        assert result.message.startswith("Missing required columns: lastName, age.")
        assert user_count() == 0

    def test_validation_errors_are_not_mixed_with_duplicates(self, db, user_count):
        content = build_workbook(
            [
                ["John", "Doe", "same@example.com", 25, "123456"],
                ["Jane", "Doe", "same@example.com", 200, "123456"],
            ]
        )
        result = UserImporter(db).run(content)

        assert result.stage == ImportStage.VALIDATING_ROWS
        assert result.kind == ImportErrorKind.FIELD_VALIDATION
        assert [(e.row, e.field, e.message) for e in result.errors] == [
            (3, "age", "Age must be at most 150")
        ]
        assert user_count() == 0

    def test_duplicates(self, db):
        rows = valid_rows(3)
        rows[2][2] = rows[0][2].upper()
        result = UserImporter(db).run(build_workbook(rows))

        assert result.stage == ImportStage.CHECKING_INTRA_FILE_DUPLICATES
        assert result.kind == ImportErrorKind.DUPLICATE
        assert [e.row for e in result.errors] == [2, 4]

    def test_store_conflict(self, db, regular_user, user_count):
        rows = valid_rows(2)
        rows[1][2] = "regular@example.com"
        result = UserImporter(db).run(build_workbook(rows))

        assert result.stage == ImportStage.CHECKING_STORE_DUPLICATES
        assert result.kind == ImportErrorKind.CONFLICT
        assert [(e.row, e.field) for e in result.errors] == [(3, "email")]
        assert user_count() == 1

    def test_race_detected_at_commit(self, db, session_factory, user_count):
        """Another writer inserts an email between the store check and commit."""

        def racing_hasher(password: str) -> str:
            if password == "secret001":
                other = session_factory()
                try:
                    UserImporter(other).run(build_workbook([["Racer", "X", "user1@example.com", 40, "racer1"]]))
                finally:
                    other.close()
            return f"hashed:{password}"

        result = UserImporter(db, hasher=racing_hasher).run(build_workbook(valid_rows(3)))

        assert result.stage == ImportStage.COMMITTING
        assert result.kind == ImportErrorKind.CONFLICT
        assert [(e.row, e.message) for e in result.errors] == [
            (3, "Email user1@example.com was inserted by another process")
        ]
        assert user_count() == 1

    def test_rejection_is_repeatable(self, db):
        content = build_workbook(
            [
                ["John", "Doe", "john@example.com", -5, "123"],
                ["Jane", "", "jane@example.com", 30, "123456"],
            ]
        )
        first = UserImporter(db).run(content)
        second = UserImporter(db).run(content)

        assert not first.success
        assert first.errors == second.errors
        assert first.message == second.message
