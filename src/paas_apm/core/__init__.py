# coding=utf-8

import logging
import os

from paas_apm.compat import kwargs_only
from paas_apm.core.config import HookConfig
from paas_apm.core.dynatrace import DynatraceHook, Stager

logger = logging.getLogger(__name__)


@kwargs_only
def install(build_dir, dep_dir, config=None, environ=None):
    """
    Run the Dynatrace hook against a staged application.

    `config` is a dict of values overriding what is read from `environ`
    (the process environment by default).
    """
    if os.name == "nt":
        logger.info("Dynatrace PaaS agent not installed - Windows is not supported")
        return False

    hook_config = HookConfig(environ=environ, **(config or {}))
    hook_config.log()

    return DynatraceHook(hook_config).after_compile(Stager(build_dir, dep_dir))
