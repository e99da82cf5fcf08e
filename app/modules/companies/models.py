# Supabase tables: companies, user_company_roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

companies:
- id: uuid (primary key)
- name: text (not null)
- created_by: uuid (references auth.users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

user_company_roles:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id)
- company_id: uuid (references companies.id)
- role: text (Admin | Member | Viewer, default Member)
- created_at: timestamp (default: now())
- unique (user_id, company_id)

Role rows are always written with upsert(on_conflict="user_id,company_id"),
so a user holds exactly one role per company.
"""
