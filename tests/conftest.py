# coding=utf-8

import json
import logging

import pytest

from paas_apm.core.config import HookConfig
from paas_apm.core.dynatrace import Stager


# Override built-in caplog fixture to always be at DEBUG level since we have
# many DEBUG log messages
@pytest.fixture()
def caplog(caplog):
    caplog.set_level(logging.DEBUG)
    yield caplog


def vcap_services(*bindings, **kwargs):
    """
    Build a VCAP_SERVICES value holding the given (name, credentials) pairs.
    """
    label = kwargs.get("label", "user-provided")
    return json.dumps(
        {label: [{"name": name, "credentials": creds} for name, creds in bindings]}
    )


@pytest.fixture
def make_config(tmp_path):
    """
    Build a HookConfig from a synthetic environ, never os.environ.
    """

    def make(environ=None, **values):
        values.setdefault("installer_path", str(tmp_path / "paasInstaller.sh"))
        return HookConfig(environ=environ or {}, **values)

    return make


@pytest.fixture
def stager(tmp_path):
    build_dir = tmp_path / "app"
    dep_dir = tmp_path / "deps" / "0"
    build_dir.mkdir()
    dep_dir.mkdir(parents=True)
    return Stager(str(build_dir), str(dep_dir))
