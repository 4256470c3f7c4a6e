"""Keep the backend action log out of the project folder during test runs."""
from __future__ import annotations
import copy
import logging.config

import pytest
from django.conf import settings


@pytest.fixture(autouse=True, scope="session")
def backend_log_outside_project(tmp_path_factory):
    logs_dir = tmp_path_factory.mktemp("flix-logs")
    logging_config = copy.deepcopy(settings.LOGGING)
    logging_config["handlers"]["backend_file"]["filename"] = str(logs_dir / "backend.log")
    logging.config.dictConfig(logging_config)
    yield logs_dir
    logging.config.dictConfig(settings.LOGGING)
