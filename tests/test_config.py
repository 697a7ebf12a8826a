import logging

import pytest
from pydantic import ValidationError

from queue_optimizer import ray_init
from queue_optimizer.config import OptimizerConfig
from queue_optimizer.log_handler import DEFAULT_MODULE_LEVELS, get_logger, setup_logging, shutdown_logging


def test_defaults(monkeypatch):
    for name in ("QUEUE_OPTIMIZER_MIN_AGENTS", "QUEUE_OPTIMIZER_MAX_AGENTS", "RAY_ADDRESS", "RAY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config = OptimizerConfig.from_env()

    assert config.min_agents == 0
    assert config.max_agents == 10
    assert config.ray_address is None
    assert config.ray_log_level == "WARNING"


def test_from_env(monkeypatch):
    monkeypatch.setenv("QUEUE_OPTIMIZER_MIN_AGENTS", "2")
    monkeypatch.setenv("QUEUE_OPTIMIZER_MAX_AGENTS", "6")
    monkeypatch.setenv("QUEUE_OPTIMIZER_PORT", "9000")
    monkeypatch.setenv("QUEUE_OPTIMIZER_LOG_LEVEL", "debug")
    monkeypatch.setenv("QUEUE_OPTIMIZER_LOG_FILE", "")
    monkeypatch.setenv("RAY_ADDRESS", "ray://head:10001")

    config = OptimizerConfig.from_env()

    assert config.min_agents == 2
    assert config.max_agents == 6
    assert config.port == 9000
    assert config.log_level == "DEBUG"
    assert config.log_file is None
    assert config.ray_address == "ray://head:10001"


def test_invalid_agent_bounds(monkeypatch):
    monkeypatch.setenv("QUEUE_OPTIMIZER_MIN_AGENTS", "8")
    monkeypatch.setenv("QUEUE_OPTIMIZER_MAX_AGENTS", "4")

    with pytest.raises(ValidationError):
        OptimizerConfig.from_env()


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        OptimizerConfig(log_level="LOUD")


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "optimizer.log"
    try:
        setup_logging(log_level=logging.INFO, log_file=str(log_file),
                      module_levels={"queue_optimizer.noisy": logging.ERROR})

        get_logger("queue_optimizer.test").info("throttle updated")
        get_logger("queue_optimizer.noisy").warning("suppressed")
    finally:
        shutdown_logging()

    content = log_file.read_text()
    assert "queue_optimizer.test - INFO - throttle updated" in content
    assert "suppressed" not in content


def test_throttle_log_level_from_env(monkeypatch):
    monkeypatch.setenv("QUEUE_OPTIMIZER_THROTTLE_LOG_LEVEL", "debug")

    assert OptimizerConfig.from_env().throttle_log_level == "DEBUG"
    with pytest.raises(ValidationError):
        OptimizerConfig(throttle_log_level="CHATTY")


def test_setup_logging_applies_default_module_levels():
    try:
        setup_logging(log_level=logging.DEBUG, module_levels={"queue_optimizer.throttle": "DEBUG"})

        assert logging.getLogger("uvicorn.access").level == DEFAULT_MODULE_LEVELS["uvicorn.access"]
        assert logging.getLogger("ray").level == logging.WARNING
        # caller levels win over the defaults
        assert logging.getLogger("queue_optimizer.throttle").level == logging.DEBUG
    finally:
        shutdown_logging()


def test_ray_helpers_without_ray(monkeypatch):
    monkeypatch.setattr(ray_init.ray, "is_initialized", lambda: False)

    assert ray_init.get_ray_resources() == {}
    assert ray_init.get_ray_dashboard_url() is None
