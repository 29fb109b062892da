# Supabase tables: audit_logs
# This file documents the expected database schema
# Rows are written by access_admin.core.audit and read by service.py

"""
Expected Supabase table structure:

audit_logs:
- id: uuid (primary key)
- created_at: timestamp (default: now()) - assigned by the database
- actor_id: uuid (nullable, no FK so entries outlive deleted actors)
- actor_email: text (nullable) - denormalized
- action: text (not null) - dot-namespaced tag, e.g. user.ban, service.add_user
- target_id: uuid (nullable)
- target_email: text (nullable) - denormalized
- details: jsonb (nullable) - shape depends on action

Append-only: no update or delete grants for the API role.
"""
