import logging
from typing import List

import pytest

from sentryagent.utils.logger import ROOT_LOGGER_NAME
from sentryagent.workflow.schemas import FileRecord


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # CLI entry points attach stdout handlers that outlive the captured stream
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


@pytest.fixture
def sample_files() -> List[FileRecord]:
    return [
        FileRecord(path="contracts/Vault.sol", content="contract Vault { function withdraw() external {} }"),
        FileRecord(path="contracts/Token.sol", content="contract Token {}"),
        FileRecord(path="README.md", content="# Vault"),
    ]
