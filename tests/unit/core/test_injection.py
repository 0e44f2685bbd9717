# coding=utf-8

import os
import shutil
import stat
import subprocess

import pytest

from paas_apm.core.errors import InjectionError
from paas_apm.core.injection import (
    escape_double_quoted,
    host_identifier_expression,
    inject,
    install_env_script,
)
from tests.compat import mock

skip_if_no_shell = pytest.mark.skipif(
    shutil.which("sh") is None, reason="Requires a POSIX shell"
)

TEMPLATE = "export DT_TENANT=abc123\nexport DT_CONNECTION_POINT=https://x/comm\n"


def shell_syntax_ok(path):
    return subprocess.call(["sh", "-n", str(path)]) == 0


def shell_eval(path, name, environ):
    return subprocess.check_output(
        ["sh", "-c", '. "$1" && printf %s "${}"'.format(name), "sh", str(path)],
        env=environ,
    ).decode("utf-8")


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "dynatrace-env.sh"
    path.write_text(TEMPLATE)
    return path


class TestInstallEnvScript(object):
    def test_copies_into_new_profile_dir(self, tmp_path, script):
        profile_dir = tmp_path / "deps" / "0" / "profile.d"

        destination = install_env_script(str(script), str(profile_dir))

        assert destination == str(profile_dir / "dynatrace-env.sh")
        with open(destination) as fp:
            assert fp.read() == TEMPLATE

    def test_existing_profile_dir(self, tmp_path, script):
        profile_dir = tmp_path / "profile.d"
        profile_dir.mkdir()

        destination = install_env_script(str(script), str(profile_dir))

        assert os.path.isfile(destination)

    def test_missing_template(self, tmp_path):
        with pytest.raises(InjectionError) as excinfo:
            install_env_script(
                str(tmp_path / "dynatrace-env.sh"), str(tmp_path / "profile.d")
            )

        assert excinfo.value.stage == "injection"


class TestInject(object):
    def test_appends_exports(self, script):
        inject(
            str(script),
            "dynatrace/oneagent/agent/lib64/liboneagentproc.so",
            host_identifier_expression("my-app"),
        )

        assert script.read_text() == (
            TEMPLATE
            + '\nexport LD_PRELOAD="${HOME}/dynatrace/oneagent/agent/lib64/'
            + 'liboneagentproc.so"'
            + '\nexport DT_HOST_ID="my-app_${CF_INSTANCE_INDEX}"'
        )

    def test_logs_steps(self, caplog, script):
        inject(str(script), "lib.so", host_identifier_expression("my-app"))

        messages = [message for _, _, message in caplog.record_tuples]
        assert messages == [
            "Open {} for modification...".format(script),
            "Write LD_PRELOAD...",
            "Write DT_HOST_ID...",
        ]

    def test_keeps_file_mode(self, script):
        os.chmod(str(script), 0o750)

        inject(str(script), "lib.so", host_identifier_expression("my-app"))

        assert stat.S_IMODE(os.stat(str(script)).st_mode) == 0o750

    def test_leaves_no_temporary_files(self, tmp_path, script):
        inject(str(script), "lib.so", host_identifier_expression("my-app"))

        assert os.listdir(str(tmp_path)) == ["dynatrace-env.sh"]

    def test_twice_appends_twice(self, script):
        inject(str(script), "lib.so", host_identifier_expression("my-app"))
        inject(str(script), "lib.so", host_identifier_expression("my-app"))

        content = script.read_text()
        assert content.count("export LD_PRELOAD=") == 2
        assert content.count("export DT_HOST_ID=") == 2

    @skip_if_no_shell
    def test_valid_shell_after_repeated_injection(self, script):
        for _ in range(3):
            inject(
                str(script),
                "dynatrace/oneagent/agent/lib64/liboneagentproc.so",
                host_identifier_expression("my-app"),
            )
            assert shell_syntax_ok(script)

    @skip_if_no_shell
    def test_values_expand_at_runtime(self, script):
        inject(
            str(script),
            "dynatrace/oneagent/lib.so",
            host_identifier_expression("my app's \"$name\" `x`"),
        )

        assert shell_syntax_ok(script)
        environ = {
            "HOME": "/home/vcap/app",
            "CF_INSTANCE_INDEX": "2",
            "PATH": os.environ.get("PATH", os.defpath),
        }
        assert (
            shell_eval(script, "LD_PRELOAD", environ)
            == "/home/vcap/app/dynatrace/oneagent/lib.so"
        )
        assert (
            shell_eval(script, "DT_HOST_ID", environ) == "my app's \"$name\" `x`_2"
        )

    def test_missing_script(self, tmp_path):
        with pytest.raises(InjectionError) as excinfo:
            inject(
                str(tmp_path / "dynatrace-env.sh"),
                "lib.so",
                host_identifier_expression("my-app"),
            )

        assert excinfo.value.path == str(tmp_path / "dynatrace-env.sh")

    def test_write_failure_cleans_up(self, tmp_path, script):
        error = OSError(28, "No space left on device")
        with mock.patch("paas_apm.core.injection.os.fsync", side_effect=error):
            with pytest.raises(InjectionError) as excinfo:
                inject(str(script), "lib.so", host_identifier_expression("my-app"))

        assert excinfo.value.cause is error
        assert script.read_text() == TEMPLATE
        assert os.listdir(str(tmp_path)) == ["dynatrace-env.sh"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("plain", "plain"),
        ('say "hi"', 'say \\"hi\\"'),
        ("$HOME", "\\$HOME"),
        ("`id`", "\\`id\\`"),
        ("back\\slash", "back\\\\slash"),
    ],
)
def test_escape_double_quoted(value, expected):
    assert escape_double_quoted(value) == expected


def test_host_identifier_expression():
    assert host_identifier_expression("app") == '"app_${CF_INSTANCE_INDEX}"'
