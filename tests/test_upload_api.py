"""End-to-end tests for the spreadsheet upload route."""

from __future__ import annotations

import pytest

import config
from conftest import XLSX_CONTENT_TYPE, build_workbook, valid_rows


def _errors(resp) -> list[tuple]:
    return [(e["row"], e["field"], e["message"]) for e in resp.json()["errors"]]


class TestUploadSuccess:
    def test_ten_valid_rows(self, upload, user_count):
        resp = upload(build_workbook(valid_rows(10)))

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Successfully imported 10 users"
        assert body["data"]["imported"] == 10
        users = body["data"]["users"]
        assert len({u["id"] for u in users}) == 10
        assert all("password_hash" not in u for u in users)
        assert all(u["role"] == "USER" and u["is_active"] for u in users)
        # admin + 10 imported
        assert user_count() == 11

    def test_turkish_headers(self, upload, client, admin_headers):
        rows = [["Ayşe", "Yılmaz", "ayse@example.com", 29, "gizli123"]]
        content = build_workbook(rows, columns=["Ad", "Soyad", "E-posta", "Yaş", "Şifre"])

        resp = upload(content)

        assert resp.status_code == 201
        user = resp.json()["data"]["users"][0]
        assert (user["first_name"], user["last_name"], user["age"]) == ("Ayşe", "Yılmaz", 29)

        login = client.post("/api/auth/login", json={"email": "ayse@example.com", "password": "gizli123"})
        assert login.status_code == 200

    def test_aliases_match_canonical_headers(self, upload):
        rows = valid_rows(2)
        resp = upload(build_workbook(rows, columns=["first name", "LAST_NAME", "E-Mail", "yas", "sifre"]))
        assert resp.status_code == 201
        assert resp.json()["data"]["imported"] == 2

    def test_extra_columns_and_order_are_ignored(self, upload):
        rows = [["HR", "secret12", 44, "x@example.com", "Kim", "Lee"]]
        columns = ["Department", "password", "age", "email", "lastName", "firstName"]
        resp = upload(build_workbook(rows, columns=columns))

        assert resp.status_code == 201
        user = resp.json()["data"]["users"][0]
        assert (user["first_name"], user["last_name"]) == ("Lee", "Kim")

    def test_extension_without_spreadsheet_content_type(self, upload):
        resp = upload(build_workbook(valid_rows(1)), filename="legacy.XLSX", content_type="application/octet-stream")
        assert resp.status_code == 201


class TestUploadRejected:
    def test_duplicate_rows(self, upload, user_count):
        rows = [
            ["Anna", "Smith", "anna@example.com", 25, "123456"],
            ["Ben", "Jones", "ben@example.com", 30, "123456"],
            ["Anna", "Again", "Anna@Example.com", 27, "123456"],
            ["Cara", "White", "cara@example.com", 33, "123456"],
        ]
        resp = upload(build_workbook(rows))

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["kind"] == "duplicate"
        assert _errors(resp) == [
            (2, "email", 'Duplicate email "anna@example.com" found in rows: 2, 4'),
            (4, "email", 'Duplicate email "anna@example.com" found in rows: 2, 4'),
        ]
        assert user_count() == 1

    @pytest.mark.parametrize(
        "age, message",
        [
            (200, "Age must be at most 150"),
            (-5, "Age must be at least 1"),
            ("", "Age is required"),
            ("twenty", "Age must be a number"),
        ],
    )
    def test_bad_age(self, upload, user_count, age, message):
        rows = valid_rows(2)
        rows[1][3] = age
        resp = upload(build_workbook(rows))

        assert resp.status_code == 400
        assert resp.json()["kind"] == "field_validation"
        assert _errors(resp) == [(3, "age", message)]
        assert user_count() == 1

    @pytest.mark.parametrize(
        "password, message",
        [
            ("123", "Password must be at least 6 characters"),
            ("", "Password is required"),
        ],
    )
    def test_bad_password(self, upload, password, message):
        rows = valid_rows(1)
        rows[0][4] = password
        resp = upload(build_workbook(rows))

        assert resp.status_code == 400
        assert _errors(resp) == [(2, "password", message)]

    def test_every_invalid_row_is_reported(self, upload, user_count):
        rows = [
            ["Valid", "User", "valid@example.com", 25, "123456"],
            ["", "NoFirstName", "no.first@example.com", 30, "123456"],
            ["NoLast", "", "no.last@example.com", 28, "123456"],
            ["BadEmail", "User", "invalid-email", 25, "123456"],
            ["BadAge", "User", "bad.age@example.com", 200, "123456"],
            ["NoAge", "User", "no.age@example.com", "", "123456"],
            ["NegativeAge", "User", "neg.age@example.com", -5, "123456"],
        ]
        resp = upload(build_workbook(rows))

        assert resp.status_code == 400
        assert resp.json()["message"] == "Validation failed for 6 field(s)"
        assert [row for row, _, _ in _errors(resp)] == [3, 4, 5, 6, 7, 8]
        assert user_count() == 1

    def test_display_name_email_rejects_whole_file(self, upload, user_count):
        rows = valid_rows(3)
        rows[1][2] = "First B <user1@example.com>"
        resp = upload(build_workbook(rows))

        assert resp.status_code == 400
        assert _errors(resp) == [(3, "email", "Invalid email format")]
        assert user_count() == 1

    def test_existing_email_is_a_conflict(self, upload, user_count, regular_user):
        rows = valid_rows(3)
        rows[2][2] = "Regular@Example.com"
        resp = upload(build_workbook(rows))

        assert resp.status_code == 409
        body = resp.json()
        assert body["kind"] == "conflict"
        assert body["message"] == "Some users already exist in the database"
        assert _errors(resp) == [
            (4, "email", 'Email "Regular@Example.com" already exists in the database')
        ]
        # admin + regular user only
        assert user_count() == 2

    def test_rejection_is_idempotent(self, upload, user_count):
        rows = valid_rows(3)
        rows[0][3] = 0
        content = build_workbook(rows)

        first = upload(content)
        second = upload(content)

        assert first.status_code == second.status_code == 400
        assert first.json() == second.json()
        assert user_count() == 1

    def test_missing_columns(self, upload):
        content = build_workbook([["John", "john@example.com"]], columns=["firstName", "email"])
        resp = upload(content)

        assert resp.status_code == 400
        body = resp.json()
        assert body["kind"] == "structural"
        assert body["message"] == (
            "Missing required columns: lastName, age. "
            "Expected columns: firstName, lastName, email, age, password"
        )
        assert body["errors"] == []

    def test_header_only_file(self, upload):
        resp = upload(build_workbook([]))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Excel file has no data rows"


class TestUploadRequest:
    def test_requires_admin(self, client, user_headers, user_count):
        resp = client.post(
            "/api/users/upload",
            files={"file": ("users.xlsx", build_workbook(valid_rows(1)), XLSX_CONTENT_TYPE)},
            headers=user_headers,
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Only administrators can upload users"
        assert user_count() == 1

    def test_requires_authentication(self, client):
        resp = client.post(
            "/api/users/upload",
            files={"file": ("users.xlsx", build_workbook(valid_rows(1)), XLSX_CONTENT_TYPE)},
        )
        assert resp.status_code == 401

    def test_no_file(self, client, admin_headers):
        resp = client.post("/api/users/upload", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "No file uploaded"

    def test_wrong_file_type(self, upload):
        resp = upload(b"name,email\n", filename="users.csv", content_type="text/csv")
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Invalid file type")

    def test_empty_file(self, upload):
        resp = upload(b"")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Uploaded file is empty"

    def test_too_large(self, upload, monkeypatch):
        monkeypatch.setattr(config, "MAX_UPLOAD_SIZE", 10)
        resp = upload(build_workbook(valid_rows(1)))
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("File too large")

    def test_corrupt_spreadsheet(self, upload):
        resp = upload(b"PK\x03\x04 definitely not a workbook")
        assert resp.status_code == 400
        assert resp.json()["kind"] == "structural"
        assert resp.json()["message"].startswith("Failed to parse Excel file")

    def test_unexpected_error(self, upload, monkeypatch):
        from importer.pipeline import UserImporter

        def explode(self, content, filename="<upload>"):
            raise RuntimeError("boom")

        monkeypatch.setattr(UserImporter, "run", explode)
        resp = upload(build_workbook(valid_rows(1)))
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Failed to process Excel file"}

    def test_import_runs_in_worker_thread(self, upload, monkeypatch):
        from fastapi.concurrency import run_in_threadpool

        import api.routes.users as users_routes
        from importer.pipeline import UserImporter

        calls = []

        async def recording_threadpool(func, *args, **kwargs):
            calls.append((func, args, kwargs))
            return await run_in_threadpool(func, *args, **kwargs)

        monkeypatch.setattr(users_routes, "run_in_threadpool", recording_threadpool)
        content = build_workbook(valid_rows(2))
        resp = upload(content, filename="batch.xlsx")

        assert resp.status_code == 201
        assert len(calls) == 1
        func, args, kwargs = calls[0]
        assert func.__func__ is UserImporter.run
        assert args == (content,)
        assert kwargs == {"filename": "batch.xlsx"}
