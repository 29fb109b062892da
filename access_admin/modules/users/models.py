# Supabase Auth: auth.users
# Accounts are owned by the identity provider; this service never writes the
# table directly. Operations go through access_admin.database.identity.

"""
Fields read from auth.users (via the auth admin API):
- id: uuid (primary key)
- email: text
- user_metadata.full_name: text (display name), user_metadata.username: text
- email_confirmed_at: timestamp (nullable) - "verified" status
- last_sign_in_at: timestamp (nullable)
- banned_until: timestamp (nullable) - "banned" status while in the future
- created_at: timestamp

Ban durations are GoTrue ban_duration strings: "<hours>h" for a timed ban,
"876000h" for an indefinite one and "none" to lift a ban.

Deleting an account removes its service_roles rows first (guarded by the
Administration admin floor); the FK cascade on service_roles.user_id is a
backstop only.
"""
