"""
Unit tests for settings and the database helpers.

Run: pytest tests/unit/test_settings.py -v
"""

import pytest
from unittest.mock import MagicMock

from config.database import ConnectionError, check_connection, get_supabase_client
from config.settings import Settings
from models.imports import ImportMode, MergePolicy, WeightUnit


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, test_settings):
        assert test_settings.supabase_configured is False
        assert test_settings.is_production is False

    def test_import_options(self):
        settings = Settings(
            _env_file=None,
            import_mode="create_only",
            import_merge_policy="overwrite",
            import_success_error_ratio=0.25,
            import_default_weight_unit="lb",
            csv_max_field_length=200,
        )

        options = settings.import_options()

        assert options.mode == ImportMode.CREATE_ONLY
        assert options.merge_policy == MergePolicy.OVERWRITE
        assert options.success_error_ratio == 0.25
        assert options.default_weight_unit == WeightUnit.LB
        assert options.max_field_length == 200
        assert options.dry_run is False

    def test_export_defaults(self):
        settings = Settings(_env_file=None, export_default_currency="pln", export_max_rows=100)

        defaults = settings.export_defaults()

        assert defaults.currency == "PLN"
        assert defaults.max_rows == 100
        assert defaults.tax_rate == "23"

    def test_invalid_ratio_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, import_success_error_ratio=0)


class TestDatabase:
    """Tests for config.database helpers."""

    def test_client_requires_credentials(self, test_settings):
        with pytest.raises(ConnectionError):
            get_supabase_client(test_settings)

    def test_check_connection_healthy(self, mock_supabase):
        mock_supabase.set_table_data("products", [{"id": "1"}], count=42)

        status = check_connection(mock_supabase)

        assert status == {"status": "healthy", "products_count": 42}

    def test_check_connection_unhealthy(self):
        client = MagicMock()
        client.table.side_effect = Exception("timeout")

        status = check_connection(client)

        assert status["status"] == "unhealthy"
        assert status["error"] == "timeout"
