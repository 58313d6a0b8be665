from __future__ import annotations

import os
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from festadmin import api, services


class Command(BaseCommand):
    """Import students into the backend from a CSV file."""

    help = "Validate a student CSV (Name, Chest Number, Class, Category, Team Name) and POST each valid row."

    def add_arguments(self, parser):
        parser.add_argument("--csv", required=True, help="Path to the CSV file")
        parser.add_argument(
            "--token",
            default=os.getenv("ARTFEST_API_TOKEN", ""),
            help="Backend bearer token (defaults to $ARTFEST_API_TOKEN)",
        )
        parser.add_argument("--dry-run", action="store_true", help="Validate only; do not create students")

    def handle(self, *args, **options):
        path = Path(options["csv"])
        if not path.exists():
            raise CommandError(f"CSV file not found at {path}.")
        if not options["token"]:
            raise CommandError("A backend token is required (--token or ARTFEST_API_TOKEN).")

        client = api.ApiClient(options["token"])
        try:
            teams = client.collection("/teams")
        except api.ApiError as e:
            raise CommandError(f"Could not load teams: {e.user_message('request failed')}") from e

        summary = services.parse_student_csv(path.read_text(encoding="utf-8-sig"), teams)
        if not summary.rows:
            raise CommandError(summary.errors[0] if summary.errors else "No student rows to import.")

        if options["dry_run"]:
            for error in summary.errors:
                self.stderr.write(f"ERROR: {error}")
            self.stdout.write(f"{len(summary.valid_rows)} rows ready to import; {summary.failed} invalid.")
            return

        try:
            services.import_students(client, summary)
        except api.ApiError as e:
            raise CommandError("The backend rejected the token; import stopped.") from e
        for row in summary.rows:
            if row.status == "error":
                self.stderr.write(f"ERROR: Row {row.line}: {row.error}")

        self.stdout.write(
            self.style.SUCCESS(f"{summary.imported} students imported successfully. {summary.failed} failed.")
        )
        if summary.failed:
            raise CommandError(f"Completed with {summary.failed} failed rows.")
