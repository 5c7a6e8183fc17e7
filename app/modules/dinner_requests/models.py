# Supabase tables: dinner_requests, dinner_request_responses
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

dinner_requests:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null, on delete cascade)
- requester_id: uuid (foreign key to auth.users.id, not null)
- request_date: date (not null) - YYYY-MM-DD
- request_time: time (not null) - HH:MM:SS
- recipe_type: text (not null) - values: random, wishlist, swipe
- deadline: timestamp (not null) - response deadline
- status: text (not null, default: 'pending') - values: pending, completed, cancelled
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

At most one pending row per group; the service deletes old pending rows
before inserting a new one.

dinner_request_responses:
- id: uuid (primary key)
- request_id: uuid (foreign key to dinner_requests.id, not null, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- response: text (not null) - values: accepted, declined
- responded_at: timestamp (default: now())
- unique constraint on (request_id, user_id)
"""
