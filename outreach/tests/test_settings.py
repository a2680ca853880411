from fastapi.testclient import TestClient

from outreach.app.main import create_app
from outreach.app.settings import (
    DEFAULT_ALLOWED_ORIGINS,
    DEFAULT_MAX_ROWS,
    ApiSettings,
    get_api_settings,
    get_import_settings,
    split_origins,
)


def test_split_origins_accepts_commas_whitespace_and_trailing_slashes():
    raw = "https://crm.example.com/, http://localhost:5173  https://crm.example.com"

    assert split_origins(raw) == ("http://localhost:5173", "https://crm.example.com")


def test_api_settings_fall_back_to_local_origins(monkeypatch):
    monkeypatch.setenv("OUTREACH_ALLOWED_ORIGINS", " , ")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "off")

    settings = get_api_settings()

    assert settings.allowed_origins == DEFAULT_ALLOWED_ORIGINS
    assert settings.run_migrations_on_startup is False


def test_configured_origin_receives_cors_headers():
    app = create_app(
        ApiSettings(allowed_origins=("https://crm.example.com",), run_migrations_on_startup=False)
    )

    with TestClient(app) as client:
        response = client.options(
            "/imports/clients",
            headers={
                "Origin": "https://crm.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == "https://crm.example.com"


def test_import_settings_read_environment(monkeypatch):
    monkeypatch.setenv("IMPORT_MAX_ROWS", "250")
    monkeypatch.setenv("IMPORT_STRUCTURAL_PHONE_FALLBACK", "false")
    monkeypatch.setenv("IMPORT_REGION_CREATOR_ROLES", "root, admin")
    get_import_settings.cache_clear()
    try:
        settings = get_import_settings()
    finally:
        get_import_settings.cache_clear()

    assert settings.max_rows == 250
    assert settings.structural_phone_fallback is False
    assert settings.region_creator_roles == frozenset({"ROOT", "ADMIN"})


def test_import_settings_defaults(monkeypatch):
    for name in ("IMPORT_MAX_ROWS", "IMPORT_STRUCTURAL_PHONE_FALLBACK", "IMPORT_REGION_CREATOR_ROLES"):
        monkeypatch.delenv(name, raising=False)
    get_import_settings.cache_clear()
    try:
        settings = get_import_settings()
    finally:
        get_import_settings.cache_clear()

    assert settings.max_rows == DEFAULT_MAX_ROWS
    assert settings.structural_phone_fallback is True
    assert settings.region_creator_roles == frozenset({"ROOT"})


def test_unrecognised_boolean_values_read_as_false(monkeypatch):
    monkeypatch.setenv("IMPORT_STRUCTURAL_PHONE_FALLBACK", "maybe")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", " YES ")
    get_import_settings.cache_clear()
    try:
        assert get_import_settings().structural_phone_fallback is False
    finally:
        get_import_settings.cache_clear()
    assert get_api_settings().run_migrations_on_startup is True
