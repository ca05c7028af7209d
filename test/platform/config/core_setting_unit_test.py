"""
Settings loading from the environment and env files
"""

from pathlib import Path

import pytest

from settlement_engine.platform.config.core_setting import Settings


ENV_EXAMPLE = Path(__file__).resolve().parents[3] / '.env.example'


@pytest.fixture
def clean_env(monkeypatch):
    for name in ('SYSTEM_ROLES', 'BACKEND_CORS_ORIGINS', 'SECRET_KEY', 'STRIPE_WEBHOOK_SECRET'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    def test_loads_the_shipped_env_example(self, clean_env):
        settings = Settings(_env_file=ENV_EXAMPLE)

        assert settings.SYSTEM_ROLES == ['system', 'admin']
        assert settings.BACKEND_CORS_ORIGINS == ['http://localhost:3000']
        assert settings.STRIPE_WEBHOOK_SECRET.get_secret_value() == 'whsec_change_me'

    def test_comma_separated_lists(self, clean_env):
        clean_env.setenv('SYSTEM_ROLES', 'system, ops ,')
        clean_env.setenv('BACKEND_CORS_ORIGINS', 'https://a.example,https://b.example')

        settings = Settings(_env_file=None)

        assert settings.SYSTEM_ROLES == ['system', 'ops']
        assert settings.BACKEND_CORS_ORIGINS == ['https://a.example', 'https://b.example']

    def test_json_array_lists(self, clean_env):
        clean_env.setenv('SYSTEM_ROLES', '["system", "billing"]')

        settings = Settings(_env_file=None)

        assert settings.SYSTEM_ROLES == ['system', 'billing']

    def test_defaults_without_env_file(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.SYSTEM_ROLES == ['system', 'admin']
        assert settings.BACKEND_CORS_ORIGINS == []
