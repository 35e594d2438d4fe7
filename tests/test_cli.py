# SPDX-License-Identifier: MIT
"""Tests for the command line interface."""

import pytest
from click.testing import CliRunner

from spot_pipeline.config import GeocodingSettings, InferenceSettings, Settings
from spot_pipeline.database import Base, Spot, build_engine, session_factory, session_scope
from spot_pipeline.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def use_settings(mocker, monkeypatch, tmp_path):
    """Make the CLI see the given Settings instead of the environment."""
    monkeypatch.chdir(tmp_path)
    mocker.patch("spot_pipeline.main.setup_logging")

    def _use(settings: Settings) -> Settings:
        mocker.patch("spot_pipeline.main.get_settings", return_value=settings)
        return settings

    return _use


class TestEnrichCommand:
    """Test `spots enrich`."""

    def test_missing_configuration_exits_nonzero(self, runner, use_settings, mocker):
        use_settings(Settings())
        enricher = mocker.patch("spot_pipeline.main.Enricher")

        result = runner.invoke(cli, ["enrich"])

        assert result.exit_code == 1
        assert "INFERENCE_ANTHROPIC_API_KEY" in result.output
        enricher.assert_not_called()

    def test_runs_with_built_context(self, runner, use_settings, mocker, make_record, store_of, make_context, fake_inference):
        use_settings(Settings())
        store = store_of(make_record())
        fake_inference.years = {1: 1346}
        build = mocker.patch("spot_pipeline.main.build_context", return_value=make_context(store))

        result = runner.invoke(cli, ["enrich", "--only", "year", "--limit", "10"])

        assert result.exit_code == 0, result.output
        assert build.call_args.kwargs["steps"] == ("year",)
        assert build.call_args.kwargs["dry_run"] is False
        assert store.records[0].year == 1346
        assert "Enrichment Summary" in result.output

    def test_unreadable_store_exits_nonzero(self, runner, use_settings, mocker, make_record, broken_store_of, make_context):
        use_settings(Settings())
        store = broken_store_of(make_record(), fail_from=0)
        mocker.patch("spot_pipeline.main.build_context", return_value=make_context(store))

        result = runner.invoke(cli, ["enrich"])

        assert result.exit_code == 1
        assert "connection reset" in result.output

    def test_dry_run_flag(self, runner, use_settings, mocker, list_store, make_context):
        use_settings(Settings())
        build = mocker.patch("spot_pipeline.main.build_context", return_value=make_context(list_store))

        result = runner.invoke(cli, ["enrich", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert build.call_args.kwargs["dry_run"] is True

    def test_invalid_step(self, runner, use_settings):
        use_settings(Settings())

        result = runner.invoke(cli, ["enrich", "--only", "weather"])

        assert result.exit_code == 2


class TestStatusCommand:
    """Test `spots status`."""

    def test_reports_gap_counts(self, runner, use_settings, tmp_path, complete_spot_data):
        url = f"sqlite:///{tmp_path / 'spots.db'}"
        engine = build_engine(url)
        Base.metadata.create_all(engine)
        with session_scope(session_factory(engine)) as session:
            session.add(Spot(**complete_spot_data))
            session.add(Spot(id=2, name="Mount Fuji", lat=35.36, lon=138.73))
        engine.dispose()
        use_settings(Settings(database_url=url))

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0, result.output
        assert "Total spots" in result.output
        assert "locale:ja" in result.output

    def test_needs_database(self, runner, use_settings):
        use_settings(Settings())

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 1


class TestConfigCommand:
    """Test `spots config`."""

    def test_masks_credentials(self, runner, use_settings):
        use_settings(Settings(
            database_url="sqlite://",
            inference=InferenceSettings(anthropic_api_key="sk-ant-abcdefghijkl"),
            geocoding=GeocodingSettings(access_token="pk.0123456789"),
        ))

        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "sk-ant-abcdefghijkl" not in result.output
        assert "sk-a...ijkl" in result.output
        assert "MISSING" in result.output
