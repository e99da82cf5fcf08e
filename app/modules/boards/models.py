# Supabase table: boards
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

boards:
- id: uuid (primary key)
- company_id: uuid (references companies.id)
- name: text (not null)
- created_by: uuid (references auth.users.id)
- created_at: timestamp (default: now())

Columns, items and cell values of a board live in board_columns,
board_items and item_values (see app.modules.board_table.models).
"""
