from pathlib import Path

import pytest
from pytest import MonkeyPatch

from archstrap.lib.output import logger


@pytest.fixture(scope='session')
def config_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_config.json'


@pytest.fixture(scope='session')
def invalid_config_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_invalid_config.json'


@pytest.fixture(scope='session')
def install_state_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_install_state.json'


@pytest.fixture(scope='session')
def lsblk_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_lsblk.json'


@pytest.fixture(scope='session')
def genfstab_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_genfstab.txt'


@pytest.fixture(autouse=True)
def log_directory(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	log_dir = tmp_path / 'log'
	monkeypatch.setattr(logger, '_path', log_dir)
	monkeypatch.setattr(logger, 'verbose', False)
	return log_dir
