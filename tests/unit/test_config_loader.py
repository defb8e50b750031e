from __future__ import annotations

from pathlib import Path

import pytest

from item_pricer.config.loader import ConfigError, load_config
from item_pricer.models.config_models import PricerConfig


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.service.base_url == "http://pricing.test/api"
    assert cfg.service.process_path == "/enhanced/process-enhanced"
    assert cfg.service.timeout_seconds == 30.0
    assert cfg.tolerance_options == (10, 20, 30)
    assert cfg.default_tolerance == 20
    assert cfg.table.page_size_options == (10, 25, 50, 100)
    assert cfg.max_scan_rows == 20
    assert cfg.export.csv_min_price == 1.0


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_omitted_sections_use_defaults(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "pricer.yml"
    cfg_path.write_text("service:\n  base_url: http://svc.test\n", encoding="utf-8")
    cfg = load_config(cfg_path)
    defaults = PricerConfig()
    assert cfg.service.base_url == "http://svc.test"
    assert cfg.service.timeout_seconds == defaults.service.timeout_seconds
    assert cfg.tolerance_options == defaults.tolerance_options
    assert cfg.table == defaults.table
    assert cfg.export == defaults.export


def test_empty_file_is_all_defaults(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "pricer.yml"
    cfg_path.write_text("", encoding="utf-8")
    assert load_config(cfg_path) == PricerConfig()


def test_env_overrides_service_url(write_config: Path, monkeypatch):
    monkeypatch.setenv("PRICER_SERVICE_URL", "http://override.test/api")
    assert load_config(write_config).service.base_url == "http://override.test/api"


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_default_tolerance_must_be_an_option(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("default: 20", "default: 25")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "tolerance.default 25" in str(e.value)


def test_page_size_must_be_an_option(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("page_size: 10\n", "page_size: 15\n")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "table.page_size 15" in str(e.value)


def test_invalid_yaml(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "pricer.yml"
    cfg_path.write_text("service: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(cfg_path)
    assert "invalid yaml" in str(e.value)


def test_top_level_must_be_mapping(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "pricer.yml"
    cfg_path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg_path)


def test_shipped_config_loads(monkeypatch):
    monkeypatch.delenv("PRICER_SERVICE_URL", raising=False)
    shipped = Path(__file__).resolve().parents[2] / "config" / "pricer.yml"
    cfg = load_config(shipped)
    assert cfg.default_tolerance in cfg.tolerance_options
    assert cfg.service.timeout_seconds == 420.0
