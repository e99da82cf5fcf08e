# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- name: text (not null)
- email: text (not null) - copied from auth.users at sign-up
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

A database trigger normally creates the row when auth.users gets a new user.
ProfileService.ensure_profile() backfills it on sign-in when the trigger did not run.
"""
