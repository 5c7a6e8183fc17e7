# Supabase Auth plus the public profiles table
# Actual operations are handled via Supabase SDK in service.py

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users

profiles:
- id: uuid (primary key, references auth.users.id)
- full_name: text (nullable)
- display_name: text (nullable)
- created_at: timestamp (default: now())

Profiles are written on registration and read wherever a member needs a
presentable name (requester labels, archived member roll-ups).
"""
