# Supabase tables: service_roles
# This file documents the expected database schema
# Actual operations are handled via access_admin.database.store

"""
Expected Supabase table structure:

service_roles:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null, on delete cascade)
- service_id: uuid (foreign key to services.id, not null)
- role: text (not null) - values: admin, user
- created_at: timestamp (default: now())
- unique constraint on (user_id, service_id)

Guarded mutations (see sql/schema.sql):
- update_service_role_guarded(p_user_id, p_service_id, p_role, p_guard_service_id)
- delete_service_role_guarded(p_user_id, p_service_id, p_guard_service_id)
- delete_user_roles_guarded(p_user_id, p_guard_service_id)

Each first locks the admin rows of p_guard_service_id (the Administration
service) in id order via lock_admin_rows, then the target row, then
re-counts admins and raises 'minimum_admins' if the change would leave fewer
than two.
"""
