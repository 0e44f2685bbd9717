# coding=utf-8

import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class HookConfig(object):
    """
    Configuration object for the buildpack hooks.

    Contains a list of configuration "layers". When a configuration key is
    looked up, each layer is asked in turn if it knows the value. The first one
    to answer affirmatively returns the value.

    A HookConfig is built once where the hook is entered and handed to every
    component that needs it, so tests can build one from a synthetic environ.
    """

    def __init__(self, environ=None, **values):
        if environ is None:
            environ = os.environ
        self.python_values = dict(values)
        self.layers = [
            Python(self.python_values),
            Env(environ),
            Derived(self),
            Defaults(),
            Null(),
        ]

    def value(self, key):
        value = self.locate_layer_for_key(key).value(key)
        if key in CONVERSIONS:
            return CONVERSIONS[key](value)
        return value

    def locate_layer_for_key(self, key):
        for layer in self.layers:
            if layer.has_config(key):
                return layer

        # Should be unreachable because Null returns None for all keys.
        raise ValueError("key {!r} not found in any layer".format(key))

    def log(self):
        logger.debug("Configuration Loaded:")
        for key in self.known_keys:
            if key in self.secret_keys:
                continue

            layer = self.locate_layer_for_key(key)
            logger.debug(
                "%-9s: %s = %s",
                layer.__class__.__name__,
                key,
                layer.value(key),
            )

    known_keys = [
        "appdynamics_agent_account_access_key",
        "appdynamics_agent_account_name",
        "appdynamics_agent_application_name",
        "appdynamics_agent_node_name",
        "appdynamics_agent_tier_name",
        "appdynamics_controller_host_name",
        "appdynamics_controller_port",
        "appdynamics_controller_ssl_enabled",
        "appdynamics_debug",
        "appdynamics_enabled",
        "appdynamics_entry_point",
        "application_name",
        "architecture",
        "bp_debug",
        "download_timeout",
        "env_script_name",
        "install_dir",
        "installer_path",
        "manifest_name",
        "monitoring_debug",
        "monitoring_enabled",
        "service_name_fragment",
        "technology",
        "verify_checksum",
    ]

    # VCAP_SERVICES is left out of known_keys entirely since every binding's
    # credentials live in it.
    secret_keys = {"appdynamics_agent_account_access_key"}

    def set(self, **kwargs):
        """
        Sets configuration values on this object. Values set here override
        values read from the environment.
        """
        self.python_values.update(kwargs)

    def unset(self, *keys):
        for key in keys:
            self.python_values.pop(key, None)


class Python(object):
    """
    A configuration overlay that lets the caller set values directly.
    """

    def __init__(self, values):
        self.values = values

    def has_config(self, key):
        return key in self.values

    def value(self, key):
        return self.values[key]


class Env(object):
    """
    Reads configuration from an environ mapping.

    Variables supplied by the platform or shared with the AppDynamics hook
    are read under their own upper-cased name, e.g. `vcap_services` looks up
    VCAP_SERVICES. Everything else is prefixed with "PAAS_APM_", e.g. the
    `install_dir` config looks for PAAS_APM_INSTALL_DIR.
    """

    platform_keys = {"vcap_services", "vcap_application", "bp_debug"}
    platform_prefixes = ("appdynamics_", "monitoring_")

    def __init__(self, environ):
        self.environ = environ

    def has_config(self, key):
        env_key = self.modify_key(key)
        return env_key in self.environ

    def value(self, key):
        env_key = self.modify_key(key)
        return self.environ[env_key]

    def modify_key(self, key):
        if key in self.platform_keys or key.startswith(self.platform_prefixes):
            return key.upper()
        return ("PAAS_APM_" + key).upper()


class Derived(object):
    """
    A configuration overlay that calculates from other values.
    """

    def __init__(self, config):
        self.config = config

    def has_config(self, key):
        return self.lookup_func(key) is not None

    def value(self, key):
        return self.lookup_func(key)()

    def lookup_func(self, key):
        """
        Returns the derive_#{key} function, or None if it isn't defined
        """
        func_name = "derive_" + key
        return getattr(self, func_name, None)

    def derive_application_name(self):
        raw = self.config.value("vcap_application")
        if not raw:
            return None
        try:
            application = json.loads(raw)
        except ValueError as exc:
            logger.debug("Error parsing VCAP_APPLICATION", exc_info=exc)
            return None
        if not isinstance(application, dict):
            return None
        name = application.get("name")
        if not isinstance(name, str):
            return None
        return name

    def derive_installer_path(self):
        return os.path.join(tempfile.gettempdir(), "paasInstaller.sh")


class Defaults(object):
    """
    Provides default values for important configurations
    """

    def __init__(self):
        self.defaults = {
            "appdynamics_agent_node_name": "process",
            "appdynamics_controller_port": 443,
            "appdynamics_controller_ssl_enabled": True,
            "appdynamics_debug": False,
            "appdynamics_enabled": "true",
            "appdynamics_entry_point": "appdynamics.agent.api:init",
            "architecture": "linux-x86-64",
            "bp_debug": False,
            "download_timeout": None,
            "env_script_name": "dynatrace-env.sh",
            "install_dir": "dynatrace/oneagent",
            "manifest_name": "manifest.json",
            "monitoring_debug": False,
            "monitoring_enabled": "true",
            "service_name_fragment": "dynatrace",
            "technology": "process",
            "vcap_services": "",
            "vcap_application": "",
            "verify_checksum": True,
        }

    def has_config(self, key):
        return key in self.defaults

    def value(self, key):
        return self.defaults[key]


class Null(object):
    """
    Always answers that a key is present, but the value is None

    Used as the last step of the layered configuration.
    """

    def has_config(self, key):
        return True

    def value(self, key):
        return None


def convert_to_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("yes", "true", "t", "1")
    # Unknown type - default to false?
    return False


def convert_to_timeout(value):
    """
    Seconds as a float, or None (no timeout) for anything that is not a
    positive number.
    """
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring invalid timeout %r", value)
        return None
    if timeout <= 0:
        return None
    return timeout


def convert_to_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


CONVERSIONS = {
    "appdynamics_controller_port": convert_to_int,
    "appdynamics_controller_ssl_enabled": convert_to_bool,
    "appdynamics_debug": convert_to_bool,
    "bp_debug": convert_to_bool,
    "download_timeout": convert_to_timeout,
    "monitoring_debug": convert_to_bool,
    "verify_checksum": convert_to_bool,
}
