# Supabase table: company_invitations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

company_invitations:
- id: uuid (primary key)
- company_id: uuid (references companies.id)
- email: text (not null; empty for open access codes)
- role: text (Admin | Member | Viewer)
- status: text (pending | cancelled | accepted | expired)
- token: text (not null, unique) - opaque single-use token for the emailed link
- access_code: text (nullable) - 8 uppercase hex characters
- user_id: uuid (nullable) - the invited user when the code targets someone
- validated: boolean (default false)
- expiration_date: timestamp (nullable)
- created_at: timestamp (default: now())

Redemption runs inside two Postgres functions called over RPC with the
redeeming user's JWT. Each one checks validated/status/expiration_date,
upserts user_company_roles and marks the row validated in one transaction:

- accept_company_invitation(invitation_token text) -> json
- validate_access_code(code text) -> json

Both return {"success": true, "company_id": ..., "role": ...}
or {"success": false, "error": "..."}.

Nothing moves a row to "expired"; expiration_date is only checked at redemption.
"""
