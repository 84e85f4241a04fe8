"""Management command-line interface.

Commands:
    init-db                 Create all database tables.
    seed-admin              Create the administrator account from config.
    import-users FILE       Import users from a spreadsheet, all or nothing.
    sample-workbook FILE    Write a sample spreadsheet (valid, errors or
                            duplicates) for trying out the import.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

import pandas as pd

import config
from core.database import SessionLocal, init_db
from core.exceptions import ConfigurationError
from core.logging_config import setup_logging
from importer import UserImporter
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = ["firstName", "lastName", "email", "age", "password"]

SAMPLE_SETS: Dict[str, List[list]] = {
    # Imports cleanly
    "valid": [
        ["John", "Doe", "john.doe@example.com", 25, "123456"],
        ["Jane", "Smith", "jane.smith@example.com", 30, "password123"],
        ["Michael", "Johnson", "michael.j@example.com", 28, "secure789"],
        ["Emily", "Brown", "emily.brown@example.com", 35, "mypass456"],
        ["David", "Wilson", "david.wilson@example.com", 22, "david12345"],
    ],
    # Rows 3-8 fail validation
    "errors": [
        ["Valid", "User", "valid@example.com", 25, "123456"],
        ["", "NoFirstName", "no.first@example.com", 30, "123456"],
        ["NoLast", "", "no.last@example.com", 28, "123456"],
        ["BadEmail", "User", "invalid-email", 25, "123456"],
        ["BadAge", "User", "bad.age@example.com", 200, "123456"],
        ["NoAge", "User", "no.age@example.com", "", "123456"],
        ["NegativeAge", "User", "neg.age@example.com", -5, "123456"],
    ],
    # Rows 2, 3 and 6 share an email; rows 4 and 5 have bad passwords
    "duplicates": [
        ["First", "User", "duplicate@example.com", 25, "123456"],
        ["Second", "User", "duplicate@example.com", 30, "123456"],
        ["Short", "Pass", "short.pass@example.com", 28, "123"],
        ["NoPass", "User", "no.pass@example.com", 25, ""],
        ["Another", "Dup", "duplicate@example.com", 35, "123456"],
        ["Valid", "AtEnd", "valid.end@example.com", 22, "validpass"],
    ],
}


def cmd_init_db(args: argparse.Namespace) -> int:
    init_db()
    print(f"Database ready: {config.DATABASE_URL}")
    return 0


def cmd_seed_admin(args: argparse.Namespace) -> int:
    """Create the administrator from ADMIN_* settings.

    Raises:
        ConfigurationError: If ADMIN_PASSWORD is not set.
    """
    if not config.ADMIN_PASSWORD:
        raise ConfigurationError("ADMIN_PASSWORD must be set to seed the administrator")

    init_db()
    db = SessionLocal()
    try:
        admin, created = UserManager(db).ensure_admin(
            email=config.ADMIN_EMAIL,
            password=config.ADMIN_PASSWORD,
            first_name=config.ADMIN_FIRST_NAME,
            last_name=config.ADMIN_LAST_NAME,
            age=config.ADMIN_AGE,
        )
    finally:
        db.close()

    if created:
        print(f"Created administrator {admin.email}")
    else:
        print(f"Administrator {admin.email} already exists")
    return 0


def cmd_import_users(args: argparse.Namespace) -> int:
    """Run the import pipeline on a local file and print the outcome."""
    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    init_db()
    db = SessionLocal()
    try:
        result = UserImporter(db).run(path.read_bytes(), filename=path.name)
    finally:
        db.close()

    print(result.message)
    if result.success:
        for user in result.users:
            print(f"  + {user.email}")
        return 0

    print(f"Stage: {result.stage.value}, kind: {result.kind.value}")
    for issue in result.errors:
        where = f"row {issue.row}" if issue.row is not None else "file"
        print(f"  - {where}, {issue.field}: {issue.message}")
    return 1


def cmd_sample_workbook(args: argparse.Namespace) -> int:
    """Write one of the sample spreadsheets to disk."""
    path = Path(args.file)
    df = pd.DataFrame(SAMPLE_SETS[args.kind], columns=SAMPLE_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_excel(path, sheet_name="Users", index=False)
    print(f"Wrote {len(df)} {args.kind} row(s) to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="user-admin",
        description="User administration management commands.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables").set_defaults(
        func=cmd_init_db
    )
    sub.add_parser("seed-admin", help="Create the administrator account").set_defaults(
        func=cmd_seed_admin
    )

    import_parser = sub.add_parser("import-users", help="Import users from a spreadsheet")
    import_parser.add_argument("file", help="Path to an .xlsx or .xls file")
    import_parser.set_defaults(func=cmd_import_users)

    sample_parser = sub.add_parser("sample-workbook", help="Write a sample spreadsheet")
    sample_parser.add_argument("file", help="Output .xlsx path")
    sample_parser.add_argument(
        "--kind",
        choices=sorted(SAMPLE_SETS),
        default="valid",
        help="Which sample rows to write (default: valid)",
    )
    sample_parser.set_defaults(func=cmd_sample_workbook)
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    setup_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
