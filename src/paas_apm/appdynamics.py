# coding=utf-8

import importlib
import logging

from paas_apm.core.config import HookConfig

logger = logging.getLogger(__name__)


class AppDynamicsOptions(object):
    def __init__(self, *args, **kwargs):
        self.debug = kwargs.get("debug", False)
        self.controller_host_name = kwargs.get("controller_host_name")
        self.controller_port = kwargs.get("controller_port", 443)
        self.controller_ssl_enabled = kwargs.get("controller_ssl_enabled", True)
        self.account_name = kwargs.get("account_name")
        self.account_access_key = kwargs.get("account_access_key")
        self.application_name = kwargs.get("application_name")
        self.tier_name = kwargs.get("tier_name")
        self.node_name = kwargs.get("node_name", "process")

    def as_environ(self):
        """
        The options under the APPD_* names read by the Python agent.
        """
        environ = {
            "APPD_CONTROLLER_HOST": self.controller_host_name,
            "APPD_CONTROLLER_PORT": str(self.controller_port),
            "APPD_SSL_ENABLED": "on" if self.controller_ssl_enabled else "off",
            "APPD_ACCOUNT_NAME": self.account_name,
            "APPD_ACCOUNT_ACCESS_KEY": self.account_access_key,
            "APPD_APP_NAME": self.application_name,
            "APPD_TIER_NAME": self.tier_name,
            "APPD_NODE_NAME": self.node_name,
        }
        if self.debug:
            environ["APPD_LOGGING_DEBUG"] = "on"
        return {key: value for key, value in environ.items() if value is not None}


def is_enabled(config):
    if (config.value("monitoring_enabled") != "true") or (
        config.value("appdynamics_enabled") != "true"
    ):
        logger.warning("Application monitoring is DISABLED.")
        return False
    elif not config.value("appdynamics_agent_application_name"):
        logger.error(
            "Application monitoring is DISABLED because application name not set."
        )
        return False
    return True


def options_from_config(config):
    return AppDynamicsOptions(
        debug=(
            config.value("appdynamics_debug") or config.value("monitoring_debug")
        ),
        controller_host_name=config.value("appdynamics_controller_host_name"),
        controller_port=config.value("appdynamics_controller_port"),
        controller_ssl_enabled=config.value("appdynamics_controller_ssl_enabled"),
        account_name=config.value("appdynamics_agent_account_name"),
        account_access_key=config.value("appdynamics_agent_account_access_key"),
        application_name=config.value("appdynamics_agent_application_name"),
        tier_name=config.value("appdynamics_agent_tier_name"),
        node_name=config.value("appdynamics_agent_node_name"),
    )


def load_entry_point(path):
    module_name, _, attribute = path.partition(":")
    return getattr(importlib.import_module(module_name), attribute)


def profile(config=None, entry_point=None):
    """
    Start the AppDynamics agent inside the current process.

    Configuration comes from the MONITORING_* and APPDYNAMICS_* environment
    variables unless a HookConfig is passed. `entry_point` is called with the
    agent settings as `environ=`; by default it is the callable named by the
    `appdynamics_entry_point` setting.

    Returns True if the agent was started.
    """
    if config is None:
        config = HookConfig()

    if not is_enabled(config):
        return False

    try:
        options = options_from_config(config)

        logger.info("Starting AppDynamics application!")
        logger.info("AppDynamics -- account: %s", options.account_name)
        logger.info("AppDynamics -- port: %s", options.controller_port)
        logger.info("AppDynamics -- ssl: %s", options.controller_ssl_enabled)
        logger.info("AppDynamics -- host: %s", options.controller_host_name)
        logger.info("AppDynamics -- appName: %s", options.application_name)
        logger.info("AppDynamics -- tier: %s", options.tier_name)
        logger.info("AppDynamics -- node: %s", options.node_name)

        if entry_point is None:
            entry_point = load_entry_point(config.value("appdynamics_entry_point"))
        entry_point(environ=options.as_environ())
    except Exception:
        logger.exception("Unable to enable application monitoring.")
        return False
    return True
