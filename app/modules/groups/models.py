# Supabase tables: groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- join_code: text (not null, unique) - 8 characters, A-Z and 0-9
- created_by: uuid (foreign key to auth.users.id, not null)
- is_active: boolean (default: true) - false once soft deleted
- is_main_group: boolean (default: false) - the creator's primary group
- created_at: timestamp (default: now())
- unique constraint unique_group_name_per_user on (created_by, name)

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null, default: 'member') - values: admin, moderator, member
- is_active: boolean (default: true)
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id)
"""
