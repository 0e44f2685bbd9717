# coding=utf-8

import json
import logging

from paas_apm.core.config import convert_to_bool

logger = logging.getLogger(__name__)

DEFAULT_NAME_FRAGMENT = "dynatrace"


class InvalidServiceDescriptor(ValueError):
    pass


class ServiceBinding(object):
    __slots__ = ("name", "label", "credentials")

    def __init__(self, name, credentials, label=None):
        self.name = name
        self.label = label
        self.credentials = credentials

    def __repr__(self):
        return "ServiceBinding(name={!r}, label={!r})".format(self.name, self.label)


class DynatraceCredentials(object):
    def __init__(self, values):
        self.values = values

    def __eq__(self, other):
        if isinstance(other, DynatraceCredentials):
            return self.values == other.values
        return NotImplemented

    def __repr__(self):
        # Never show the API token.
        return "DynatraceCredentials(environment_id={!r})".format(
            self.environment_id
        )

    def get(self, key):
        value = self.values.get(key)
        if value is None:
            return ""
        return str(value)

    @property
    def environment_id(self):
        return self.get("environmentid")

    @property
    def api_token(self):
        return self.get("apitoken")

    @property
    def api_url(self):
        api_url = self.get("apiurl")
        if api_url:
            return api_url.rstrip("/")
        return "https://{}.live.dynatrace.com/api".format(self.environment_id)

    @property
    def skip_errors(self):
        return convert_to_bool(self.values.get("skiperrors", False))

    def is_valid(self):
        return bool(
            (self.environment_id or self.get("apiurl")) and self.api_token
        )


class Resolution(object):
    """
    Outcome of looking for monitoring credentials among the service bindings.

    Only an `Enabled` resolution carries credentials; every other outcome
    means "do not install the agent", for a different reason.
    """

    enabled = False
    credentials = None


class Disabled(Resolution):
    def __repr__(self):
        return "Disabled()"


class Ambiguous(Resolution):
    def __init__(self, names):
        self.names = names

    def __repr__(self):
        return "Ambiguous(names={!r})".format(self.names)


class Invalid(Resolution):
    def __init__(self, cause):
        self.cause = cause

    def __repr__(self):
        return "Invalid(cause={!r})".format(self.cause)


class Enabled(Resolution):
    enabled = True

    def __init__(self, credentials, name=None):
        self.credentials = credentials
        self.name = name

    def __repr__(self):
        return "Enabled(name={!r})".format(self.name)


def parse_service_bindings(raw):
    """
    Parse a VCAP_SERVICES style descriptor into a list of ServiceBinding.

    The descriptor maps each service offering label to the list of bound
    instances of that offering, each with a `name` and a `credentials` map.
    """
    if not raw:
        return []
    try:
        services = json.loads(raw)
    except ValueError as exc:
        raise InvalidServiceDescriptor(
            "Could not parse service descriptor: {}".format(exc)
        )

    if not isinstance(services, dict):
        raise InvalidServiceDescriptor("Service descriptor is not an object")

    bindings = []
    for label, instances in services.items():
        if not isinstance(instances, list):
            raise InvalidServiceDescriptor(
                "Services under {!r} are not a list".format(label)
            )
        for instance in instances:
            if not isinstance(instance, dict):
                raise InvalidServiceDescriptor(
                    "Service under {!r} is not an object".format(label)
                )
            name = instance.get("name") or ""
            credentials = instance.get("credentials") or {}
            if not isinstance(name, str) or not isinstance(credentials, dict):
                raise InvalidServiceDescriptor(
                    "Malformed service under {!r}".format(label)
                )
            bindings.append(ServiceBinding(name, credentials, label=label))
    return bindings


def matches(binding, name_fragment=DEFAULT_NAME_FRAGMENT):
    return (
        name_fragment in binding.name
        and DynatraceCredentials(binding.credentials).is_valid()
    )


def resolve(bindings, name_fragment=DEFAULT_NAME_FRAGMENT):
    detected = [binding for binding in bindings if matches(binding, name_fragment)]

    if len(detected) == 1:
        logger.debug("Found one matching service: %s", detected[0].name)
        return Enabled(
            DynatraceCredentials(detected[0].credentials), name=detected[0].name
        )
    elif len(detected) > 1:
        logger.warning("More than one matching service found!")
        return Ambiguous([binding.name for binding in detected])

    return Disabled()


def resolve_from_descriptor(raw, name_fragment=DEFAULT_NAME_FRAGMENT):
    try:
        bindings = parse_service_bindings(raw)
    except InvalidServiceDescriptor as exc:
        logger.debug("Error parsing service descriptor", exc_info=exc)
        return Invalid(exc)
    return resolve(bindings, name_fragment=name_fragment)
