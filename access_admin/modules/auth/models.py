# Supabase Auth
# This module uses Supabase's built-in authentication system
# Tokens are issued to the frontend by Supabase directly; this API only
# validates them (auth.get_user) and resolves the caller's Administration role.

"""
Request authentication:
- Authorization: Bearer <Supabase access token>
- auth.get_user(jwt) resolves the account (401 when absent or invalid)
- the account's service_roles row for the Administration service gives the
  role (admin | user); no row means no access (403), except on /auth/verify
  which answers {"isMember": false}
"""
