# Supabase Auth
# Identity is owned by Supabase Auth (auth.users); this service never stores passwords.
# Sign-up passes the display name as user metadata so the profiles trigger can copy it.

"""
Supabase Auth calls used here:
- auth.sign_up() - register with {"name", "full_name"} metadata
- auth.sign_in_with_password() - returns the session JWT handed back to clients
- auth.get_user() - resolve the bearer token on every request
- auth.sign_out() - end the session

Company memberships for the signed-in user live in user_company_roles and are
loaded per request into app.core.session.AuthContext.
"""
