# Supabase tables: meal_requests, meal_request_options, meal_votes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
#
# Migration: a composite UNIQUE (group_id, status) blocks a second
# completed row per group. Replace it with a partial index so only active rows
# are unique per group:
#   ALTER TABLE meal_requests DROP CONSTRAINT IF EXISTS meal_requests_group_id_status_key;
#   CREATE UNIQUE INDEX meal_requests_one_active_per_group
#       ON meal_requests (group_id) WHERE status = 'active';

"""
Expected Supabase table structure:

meal_requests:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null, on delete cascade)
- requested_by: uuid (foreign key to auth.users.id, not null)
- status: text (not null, default: 'active') - values: active, completed, cancelled
- total_options: integer (not null)
- created_at: timestamp (default: now())
- completed_at: timestamp (nullable)
- unique index on (group_id) where status = 'active'

meal_request_options:
- id: uuid (primary key)
- request_id: uuid (foreign key to meal_requests.id, not null, on delete cascade)
- meal_id: text (not null) - external catalog id
- meal_data: jsonb (not null) - {id, name, imageUrl, estimatedMinutes, description}
- option_order: integer (not null) - 1..N
- created_at: timestamp (default: now())
- unique constraint on (request_id, option_order)

meal_votes:
- id: uuid (primary key)
- request_id: uuid (foreign key to meal_requests.id, not null, on delete cascade)
- meal_option_id: uuid (foreign key to meal_request_options.id, not null, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- vote: text (not null) - values: yes, no
- voted_at: timestamp (default: now())
- unique constraint on (request_id, meal_option_id, user_id)

RLS: votes may be inserted/updated only by active members of the group that
owns an active meal request containing the option.
"""
