from pathlib import Path

from outreach_desk.infrastructure.config import Settings, SheetsSettings, StoreSettings, WhatsAppSettings
from outreach_desk.infrastructure.persistence import InMemoryProspectStore, SqliteProspectStore, create_store


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("WHATSAPP_PROVIDER", "cloud_api")
    monkeypatch.setenv("WHATSAPP_SEND_DELAY", "0.5")
    monkeypatch.setenv("GOOGLE_SPREADSHEET_ID", "sheet-id")
    monkeypatch.setenv("SYNC_ON_STARTUP", "no")
    monkeypatch.setenv("STORE_BACKEND", "memory")

    settings = Settings()

    assert settings.whatsapp.provider == "cloud_api"
    assert settings.whatsapp.send_delay_seconds == 0.5
    assert settings.sheets.is_configured
    assert settings.sheets.sync_on_startup is False
    assert settings.store.backend == "memory"


def test_bad_delay_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("WHATSAPP_SEND_DELAY", "soon")

    assert WhatsAppSettings().send_delay_seconds == 2.0


def test_validate_reports_problems(tmp_path):
    settings = Settings(
        whatsapp=WhatsAppSettings(provider="telegram"),
        sheets=SheetsSettings(spreadsheet_id="sheet-id", credentials_file=tmp_path / "missing.json"),
        store=StoreSettings(backend="postgres"),
    )

    issues = settings.validate()

    assert any("WHATSAPP_PROVIDER" in issue for issue in issues)
    assert any("credentials file not found" in issue for issue in issues)
    assert any("STORE_BACKEND" in issue for issue in issues)


def test_create_store(tmp_path):
    memory = create_store(Settings(store=StoreSettings(backend="memory")))
    sqlite = create_store(Settings(store=StoreSettings(backend="sqlite", database_file=tmp_path / "p.db")))

    assert isinstance(memory, InMemoryProspectStore)
    assert isinstance(sqlite, SqliteProspectStore)
    assert Path(sqlite.db_path).exists()
