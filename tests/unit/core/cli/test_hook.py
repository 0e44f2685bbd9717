# coding=utf-8

import logging

import pytest

from paas_apm.core.cli.hook import main
from paas_apm.core.errors import NonZeroExit
from tests.compat import mock


@pytest.fixture(autouse=True)
def mock_install():
    # Always mock out the actual hook for these tests, to keep them quick
    with mock.patch("paas_apm.core.cli.hook.install") as mock_obj:
        yield mock_obj


@pytest.fixture(autouse=True)
def mock_basicConfig():
    # Have to use a mock for basicConfig since logging is already configured
    # during tests
    with mock.patch("paas_apm.core.cli.hook.logging.basicConfig") as mock_obj:
        yield mock_obj


@pytest.mark.parametrize(
    "args, environ, expected_level",
    [
        ([], {}, logging.INFO),
        (["-v"], {}, logging.DEBUG),
        ([], {"BP_DEBUG": "true"}, logging.DEBUG),
    ],
)
def test_logging_level(mock_basicConfig, args, environ, expected_level):
    with mock.patch.dict("os.environ", environ):
        main(args + ["dynatrace", "/app", "/deps/0"])

    mock_basicConfig.assert_called_with(level=expected_level)


def test_dynatrace(mock_install):
    result = main(["dynatrace", "/app", "/deps/0"])

    assert result == 0
    mock_install.assert_called_with(build_dir="/app", dep_dir="/deps/0")


def test_dynatrace_failure(caplog, mock_install):
    mock_install.side_effect = NonZeroExit(2)

    result = main(["dynatrace", "/app", "/deps/0"])

    assert result == 1
    assert caplog.record_tuples == [
        (
            "paas_apm.core.cli.hook",
            logging.ERROR,
            "Hook failed during install: Installer exited with status 2",
        )
    ]


def test_requires_command():
    with pytest.raises(SystemExit):
        main([])
