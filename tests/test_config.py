# tests/test_config.py
"""Unit tests for settings and the derived database / allowlist values."""

import pytest
from miles.config import Settings


class TestDatabaseUrl:
    """Embedded-store detection and the Prisma-style file: rewrite."""

    @pytest.mark.parametrize("url,expected", [
        ("file:./dev.db", "sqlite:///./dev.db"),
        ("file:/var/lib/miles/miles.db", "sqlite:////var/lib/miles/miles.db"),
        ("sqlite:///./dev.db", "sqlite:///./dev.db"),
        ("sqlite://", "sqlite://"),
        ("postgresql://miles:miles@db:5432/miles", "postgresql://miles:miles@db:5432/miles"),
    ])
    def test_sqlalchemy_url(self, url, expected):
        assert Settings(DATABASE_URL=url).SQLALCHEMY_URL == expected

    @pytest.mark.parametrize("url,embedded", [
        ("file:./dev.db", True),
        ("sqlite:///./dev.db", True),
        ("sqlite://", True),
        ("postgresql://miles:miles@db:5432/miles", False),
        ("postgresql+psycopg2://localhost/miles", False),
    ])
    def test_is_sqlite(self, url, embedded):
        assert Settings(DATABASE_URL=url).IS_SQLITE is embedded


class TestEnvNames:
    """MILES_* names with MERAKI_* fallbacks."""

    def test_meraki_fallback_names(self, monkeypatch):
        monkeypatch.delenv("MILES_SHARED_SECRET", raising=False)
        monkeypatch.setenv("MERAKI_SHARED_SECRET", "from-meraki")
        assert Settings().SHARED_SECRET == "from-meraki"

    def test_miles_name_wins(self, monkeypatch):
        monkeypatch.setenv("MILES_SHARED_SECRET", "from-miles")
        monkeypatch.setenv("MERAKI_SHARED_SECRET", "from-meraki")
        assert Settings().SHARED_SECRET == "from-miles"

    def test_ip_allowlist_split_and_trimmed(self):
        settings = Settings(WEBHOOK_IP_ALLOWLIST=" 10.0.0.1, ,10.0.0.2 ")
        assert settings.IP_ALLOWLIST == ["10.0.0.1", "10.0.0.2"]
