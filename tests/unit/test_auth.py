import pytest

from src.infrastructure.database.supabase_client import SupabaseAuthAdapter


def test_disabled_auth_maps_a_token_to_a_stable_local_user(monkeypatch):
    monkeypatch.setenv("SUPABASE_DISABLED", "1")
    auth = SupabaseAuthAdapter()

    first = auth.validate_token("token-a")

    assert first.id.startswith("local-")
    assert first == auth.validate_token("token-a")
    assert first.email is None


def test_empty_token_is_rejected(monkeypatch):
    monkeypatch.setenv("SUPABASE_DISABLED", "1")

    with pytest.raises(ValueError):
        SupabaseAuthAdapter().validate_token("")
