"""
Tests for YAML configuration loading.
"""

import pytest

from bookingslots.config import AppConfig
from bookingslots.domain.exceptions import InvalidServiceParameters

CONFIG_YAML = """
provider:
  base_url: https://provider.example/api
  access_token: secret
  max_retries: 1

defaults:
  duration_minutes: 45
  interval_minutes: 15
  buffer_minutes: 10
  minimum_notice_minutes: 120
  strategy: Intersection

timezone: Europe/Vienna

workers:
  - name: anna
    id: 101
    is_default: true
  - name: ben
    id: "102"
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_from_yaml(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        assert config.provider.base_url == "https://provider.example/api"
        assert config.timezone == "Europe/Vienna"
        assert config.defaults.strategy == "intersection"
        assert [worker.id for worker in config.workers] == ["101", "102"]
        assert config.default_worker_ids() == ["101"]

    def test_defaults_without_file_content(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "Europe/Berlin"
        assert config.defaults.buffer_minutes == 15
        assert config.workers == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("workers: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(path)

    @pytest.mark.parametrize(
        "data",
        [
            {"timezone": "Atlantis/Capital"},
            {"defaults": {"strategy": "majority"}},
            {"defaults": {"interval_minutes": 0}},
            {"defaults": {"buffer_minutes": -5}},
            {"provider": {"max_retries": 2}},
            {"provider": {"max_retries": -1}},
            {"workers": [{"name": "anna", "id": 1}, {"name": "Anna", "id": 2}]},
            {"workers": [{"name": "anna", "id": 1}, {"name": "ben", "id": "1"}]},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValueError):
            AppConfig(**data)

    def test_resolve_workers(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        assert config.resolve_worker("ANNA") == "101"
        assert config.resolve_worker("102") == "102"
        assert config.resolve_worker("999") == "999"
        assert config.resolve_workers(["anna", "101", "ben"]) == ["101", "102"]

    def test_resolve_unknown_worker(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        with pytest.raises(ValueError, match="carla"):
            config.resolve_workers(["anna", "carla"])

        with pytest.raises(ValueError):
            config.resolve_workers([])

    def test_service_parameters(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        parameters = config.service_parameters(buffer_minutes=0)

        assert parameters.duration_minutes == 45
        assert parameters.interval_minutes == 15
        assert parameters.buffer_minutes == 0
        assert parameters.minimum_notice_minutes == 120

    def test_service_parameter_override_is_validated(self, config_file):
        config = AppConfig.load_from_yaml(config_file)

        with pytest.raises(InvalidServiceParameters):
            config.service_parameters(duration_minutes=-30)

    def test_more_than_one_retry_rejected_in_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("provider:\n  max_retries: 2\n", encoding="utf-8")

        with pytest.raises(ValueError, match="max_retries"):
            AppConfig.load_from_yaml(path)
