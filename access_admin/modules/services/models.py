# Supabase tables: services
# This file documents the expected database schema
# Actual operations are handled via access_admin.database.store

"""
Expected Supabase table structure:

services:
- id: uuid (primary key)
- name: text (not null, unique) - e.g. "Administration", "RMS"
- created_at: timestamp (default: now())

The service named by ADMINISTRATION_SERVICE_NAME gates access to this API.
Services are created but never renamed or deleted here.
"""
