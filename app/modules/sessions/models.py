# Supabase table: terminated_sessions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

terminated_sessions:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null, unique)
- group_name: text (not null) - snapshot of the name at termination
- top_results: jsonb (not null) - ranked options, best first
- member_responses: jsonb (not null) - per-member response and vote roll-up
- terminated_at: timestamp (default: now())

One row per group. A new termination overwrites the previous snapshot; the
conflict resolver deletes it when the next decision cycle starts.
"""
