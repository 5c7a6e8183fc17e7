from supabase import create_client, Client
from app.config import settings


class StoreNotConfigured(RuntimeError):
    pass


class SupabaseClient:
    """Process-wide clients for the row store.

    Request handlers use the anon-key client so row policies see the caller.
    The service-role client is only for maintenance scripts that must see
    every group's rows; it is never a silent stand-in for the anon client.
    """
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.supabase_url and settings.supabase_key)

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            if not cls.is_configured():
                raise StoreNotConfigured("SUPABASE_URL and SUPABASE_KEY must be set")
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Maintenance-script client; row policies would hide other members' rows from the anon client."""
        if cls._service_client is None:
            if not settings.supabase_url or not settings.supabase_service_role_key:
                raise StoreNotConfigured(
                    "SUPABASE_SERVICE_ROLE_KEY must be set to run maintenance scripts"
                )
            cls._service_client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return cls._service_client

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()
