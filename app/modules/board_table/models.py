# Supabase tables: board_columns, board_items, item_values
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

board_columns:
- id: uuid (primary key)
- board_id: uuid (references boards.id)
- name: text (not null)
- type: text (one of app.modules.board_table.cells.COLUMN_TYPES)
- order: integer
- options: jsonb (list of strings, status/priority only)
- is_readonly: boolean (default: false)
- created_at: timestamp (default: now())

board_items:
- id: uuid (primary key)
- board_id: uuid (references boards.id)
- name: text (not null)
- order: integer
- created_at: timestamp (default: now())

item_values:
- id: uuid (primary key)
- item_id: uuid (references board_items.id)
- column_id: uuid (references board_columns.id)
- value: text (text-like types, date-range as JSON {"start","end"})
- number_value: numeric
- date_value: date (date, timestamp, "last updated")
- boolean_value: boolean (checkbox)
- updated_at: timestamp
- unique (item_id, column_id)

All three tables are published to the realtime change feed.
"""
