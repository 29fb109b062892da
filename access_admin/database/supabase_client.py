from supabase import create_client, Client
from supabase.client import ClientOptions
from access_admin.config.settings import settings


def _client_options() -> ClientOptions:
    return ClientOptions(
        postgrest_client_timeout=settings.upstream_timeout_seconds,
        auto_refresh_token=False,
        persist_session=False,
    )


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Anon-key client; used to validate end-user JWTs."""
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key, options=_client_options())
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Required for auth.admin and audit writes."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key, options=_client_options()
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_supabase_admin() -> Client:
    return SupabaseClient.get_service_client()
