"""Supabase-compatible adapters for the remote data client."""

from gamenight.infrastructure.remote.supabase.auth import SupabaseAuthClient
from gamenight.infrastructure.remote.supabase.client import SupabaseClient
from gamenight.infrastructure.remote.supabase.realtime import RealtimeClient
from gamenight.infrastructure.remote.supabase.rest import SupabaseRestClient
from gamenight.infrastructure.remote.supabase.session_store import SessionStore

__all__ = [
    "RealtimeClient",
    "SessionStore",
    "SupabaseAuthClient",
    "SupabaseClient",
    "SupabaseRestClient",
]
