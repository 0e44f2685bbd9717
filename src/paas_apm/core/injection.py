# coding=utf-8

import logging
import os
import shutil
import tempfile

from paas_apm.core.errors import InjectionError

logger = logging.getLogger(__name__)

INSTANCE_INDEX_EXPRESSION = "${CF_INSTANCE_INDEX}"


def escape_double_quoted(value):
    """
    Escape a literal for use inside a double-quoted shell string.
    """
    for char in ("\\", '"', "$", "`"):
        value = value.replace(char, "\\" + char)
    return value


def host_identifier_expression(app_name):
    return '"{}_{}"'.format(
        escape_double_quoted(app_name), INSTANCE_INDEX_EXPRESSION
    )


def preload_statement(agent_lib_path):
    # ${HOME} is expanded when the application starts, not at build time.
    return '\nexport LD_PRELOAD="${{HOME}}/{}"'.format(
        escape_double_quoted(agent_lib_path)
    )


def host_id_statement(host_identifier_expression):
    return "\nexport DT_HOST_ID={}".format(host_identifier_expression)


def install_env_script(template_path, profile_dir):
    """
    Copy the installer's environment script into the profile directory that
    the platform sources at application startup.
    """
    destination = os.path.join(profile_dir, os.path.basename(template_path))
    logger.debug("Copy %s to %s", template_path, destination)
    try:
        if not os.path.isdir(profile_dir):
            os.makedirs(profile_dir)
        shutil.copyfile(template_path, destination)
    except OSError as exc:
        raise InjectionError(destination, exc)
    return destination


def inject(script_path, agent_lib_path, host_identifier_expression):
    """
    Append the LD_PRELOAD and DT_HOST_ID exports to the script at script_path.

    The new content is written to a temporary file next to the script and
    renamed over it, so the script is never left half written. Existing
    exports are kept: injecting twice appends two blocks.
    """
    logger.debug("Open %s for modification...", script_path)
    directory = os.path.dirname(os.path.abspath(script_path))
    try:
        with open(script_path, "r") as fp:
            content = fp.read()

        logger.debug("Write LD_PRELOAD...")
        content += preload_statement(agent_lib_path)
        logger.debug("Write DT_HOST_ID...")
        content += host_id_statement(host_identifier_expression)

        mode = os.stat(script_path).st_mode & 0o7777
        fd, temp_path = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as fp:
                fp.write(content)
                fp.flush()
                os.fsync(fp.fileno())
            os.chmod(temp_path, mode)
            os.replace(temp_path, script_path)
        except OSError:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
    except OSError as exc:
        raise InjectionError(script_path, exc)
