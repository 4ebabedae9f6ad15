#!/usr/bin/env python3
"""Check the session version column used for compare-and-swap updates."""
import sys

from contestacion_engine.db.supabase_client import get_supabase

MIGRATION_SQL = """
ALTER TABLE public.lexia_contestacion_sessions
ADD COLUMN IF NOT EXISTS version INTEGER NOT NULL DEFAULT 0;

COMMENT ON COLUMN public.lexia_contestacion_sessions.version IS 'Incremented on every state write; updates must match the version they read';
"""


def run_migration():
    supabase = get_supabase()

    try:
        print("Checking lexia_contestacion_sessions.version column...")
        supabase.table("lexia_contestacion_sessions").select("version").limit(1).execute()
        print("Column exists.")

    except Exception as e:
        print(f"Migration check failed: {e}")
        print("Run this SQL in the Supabase SQL editor:")
        print(MIGRATION_SQL)
        sys.exit(1)


if __name__ == "__main__":
    run_migration()
