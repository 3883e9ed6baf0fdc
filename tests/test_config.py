"""
Configuration tests
"""

import json
import logging
import logging.handlers

import pytest
import yaml

from docmodel import ApplicationConfig, Environment, LoggingConfig, configure_logging


class TestApplicationConfig:
    def test_defaults(self):
        config = ApplicationConfig()

        assert config.environment is Environment.DEVELOPMENT
        assert config.persistence.backend == "memory"
        assert config.cascade.enabled
        assert not config.cascade.await_propagation
        assert config.cascade.max_depth > 0

    def test_for_environment(self):
        testing = ApplicationConfig.for_environment(Environment.TESTING)
        assert testing.cascade.await_propagation
        assert testing.logging.level == "WARNING"

        production = ApplicationConfig.for_environment(Environment.PRODUCTION)
        assert production.persistence.backend == "mongo"
        assert production.logging.file_path

    def test_from_dict_round_trip(self):
        config = ApplicationConfig.from_dict({
            "environment": "staging",
            "debug": True,
            "persistence": {"backend": "mongo", "database": "shop", "unknown": 1},
            "cascade": {"max_depth": 2, "operation_timeout": 0.5},
            "logging": {"level": "ERROR"},
        })

        assert config.environment is Environment.STAGING
        assert config.debug
        assert config.persistence.database == "shop"
        assert config.cascade.max_depth == 2
        assert config.logging.level == "ERROR"
        assert ApplicationConfig.from_dict(config.to_dict()).to_dict() == config.to_dict()

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "docmodel.json"
        path.write_text(json.dumps({"persistence": {"backend": "mongo", "url": "mongodb://db:27017"}}))

        config = ApplicationConfig.from_file(path)

        assert config.persistence.url == "mongodb://db:27017"

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "docmodel.yaml"
        path.write_text(yaml.safe_dump({"cascade": {"enabled": False}}))

        assert not ApplicationConfig.from_file(path).cascade.enabled

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "docmodel.ini"
        path.write_text("[docmodel]")

        with pytest.raises(ValueError):
            ApplicationConfig.from_file(path)
        with pytest.raises(FileNotFoundError):
            ApplicationConfig.from_file(tmp_path / "missing.json")

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("DOCMODEL_ENV", "testing")
        monkeypatch.setenv("DOCMODEL_DEBUG", "true")
        monkeypatch.setenv("DOCMODEL_BACKEND", "mongo")
        monkeypatch.setenv("DOCMODEL_MONGO_URL", "mongodb://env:27017")
        monkeypatch.setenv("DOCMODEL_DATABASE", "envdb")
        monkeypatch.setenv("DOCMODEL_LOG_LEVEL", "debug")

        config = ApplicationConfig.from_environment()

        assert config.environment is Environment.TESTING
        assert config.debug
        assert config.persistence.backend == "mongo"
        assert config.persistence.url == "mongodb://env:27017"
        assert config.persistence.database == "envdb"
        assert config.logging.level == "DEBUG"


class TestConfigureLogging:
    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "docmodel.log"
        logger = configure_logging(
            LoggingConfig(level="DEBUG", file_path=str(log_file), max_file_size=1024, backup_count=2),
            logger_name="docmodel.test_logging",
        )
        try:
            handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(handlers) == 1
            assert handlers[0].maxBytes == 1024
            assert logger.level == logging.DEBUG

            logger.debug("hello")
            handlers[0].flush()
            assert "hello" in log_file.read_text()

            configure_logging(LoggingConfig(level="INFO"), logger_name="docmodel.test_logging")
            assert len(logger.handlers) == 1
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
