"""
Backend connection check.

Run with ``python -m houseshare.diagnostics`` after filling in the
Supabase settings. It verifies that:

1. SUPABASE_URL and SUPABASE_KEY are set
2. The ``houses`` table answers a zero-row select
3. The core tables exist
4. The auth service responds

Exit status is 1 when any required check fails.
"""

import argparse
import sys
from typing import Optional

from pydantic import BaseModel, Field

from houseshare.config.settings import SupabaseSettings
from houseshare.services.storage.supabase_store import SupabaseClient


CORE_TABLES: tuple[str, ...] = (
    "houses",
    "house_members",
    "categories",
    "charges",
    "payments",
)


class BackendCheckReport(BaseModel):
    """Outcome of a connection check."""

    configured: bool = False
    connected: bool = False
    missing_tables: list[str] = Field(default_factory=list)
    auth_available: bool = False
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.configured and self.connected and self.auth_available


def _is_missing_table(message: str) -> bool:
    # Postgres says "does not exist"; PostgREST's schema cache says "Could not find the table"
    return "does not exist" in message or "Could not find the table" in message


def check_backend(client: Optional[SupabaseClient] = None) -> BackendCheckReport:
    """
    Run all checks and collect the results.

    Args:
        client: Client to check; built from the environment if omitted
    """
    report = BackendCheckReport()

    if client is None:
        try:
            client = SupabaseClient(SupabaseSettings())
        except Exception as e:
            report.errors.append(
                f"Missing environment variables: set SUPABASE_URL and SUPABASE_KEY ({e})"
            )
            return report
    report.configured = True

    error = client.check_table("houses")
    if error is not None:
        if _is_missing_table(error):
            report.errors.append(
                "houses table not found. Make sure the database schema has been applied"
            )
        else:
            report.errors.append(error)
            if "Invalid API key" in error:
                report.errors.append("Make sure SUPABASE_KEY is the project's anon key")
        return report
    report.connected = True

    for table in CORE_TABLES:
        error = client.check_table(table)
        if error is not None and _is_missing_table(error):
            report.missing_tables.append(table)

    try:
        client.auth.get_session()
        report.auth_available = True
    except Exception as e:
        report.errors.append(f"Auth service unavailable: {e}")

    return report


def render_report(report: BackendCheckReport) -> str:
    lines = ["🔍 Testing Supabase connection...", ""]

    lines.append("1. Testing connection...")
    if not report.connected:
        for error in report.errors:
            lines.append(f"   ❌ {error}")
        return "\n".join(lines)
    lines.append("   ✅ Connection successful!")
    lines.append("")

    lines.append("2. Checking tables...")
    if report.missing_tables:
        lines.append(f"   ⚠️  Missing tables: {', '.join(report.missing_tables)}")
    else:
        lines.append("   ✅ All tables found!")
    lines.append("")

    lines.append("3. Testing authentication...")
    if report.auth_available:
        lines.append("   ✅ Auth service available (no session yet, which is expected)")
    else:
        for error in report.errors:
            lines.append(f"   ❌ {error}")
    lines.append("")

    if report.ok:
        lines.append("✅ All tests passed! Your Supabase setup is working correctly.")
        lines.append("You can now start the app with: streamlit run app/main.py")
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Check that the Supabase backend is reachable and set up",
    )
    parser.parse_args(argv)

    report = check_backend()
    print(render_report(report))
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
