# coding=utf-8

import hashlib
import json
import logging

from paas_apm.core.errors import InvalidManifest, NoPrimaryBinary, TechnologyNotFound

logger = logging.getLogger(__name__)

PRIMARY = "primary"


class BinaryDescriptor(object):
    __slots__ = ("path", "checksum", "version", "binary_type")

    def __init__(self, path, checksum="", version="", binary_type=None):
        self.path = path
        self.checksum = checksum
        self.version = version
        self.binary_type = binary_type

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise TypeError("binary entry is not an object")
        path = data.get("path")
        checksum = data.get("md5", "")
        version = data.get("version", "")
        binary_type = data.get("binarytype")
        if not isinstance(path, str):
            raise TypeError("binary path is not a string")
        if not isinstance(checksum, str) or not isinstance(version, str):
            raise TypeError("binary md5/version is not a string")
        if binary_type is not None and not isinstance(binary_type, str):
            raise TypeError("binarytype is not a string")
        return cls(path, checksum=checksum, version=version, binary_type=binary_type)

    def __repr__(self):
        return "BinaryDescriptor(path={!r}, binary_type={!r})".format(
            self.path, self.binary_type
        )


class Manifest(object):
    def __init__(self, technologies, version=""):
        self.technologies = technologies
        self.version = version

    @classmethod
    def from_json(cls, data):
        if not isinstance(data, dict):
            raise TypeError("manifest is not an object")
        technologies = {}
        for technology, architectures in (data.get("technologies") or {}).items():
            if not isinstance(architectures, dict):
                raise TypeError(
                    "architectures of {!r} are not an object".format(technology)
                )
            technologies[technology] = {
                architecture: [
                    BinaryDescriptor.from_json(item) for item in binaries or []
                ]
                for architecture, binaries in architectures.items()
            }
        version = data.get("version", "")
        if not isinstance(version, str):
            raise TypeError("manifest version is not a string")
        return cls(technologies, version=version)


def parse_manifest(path):
    logger.debug("Parsing manifest path: %s", path)
    try:
        with open(path) as manifest_file:
            data = json.load(manifest_file)
    except OSError as exc:
        raise InvalidManifest("Error opening manifest at {}: {}".format(path, exc))
    except ValueError as exc:
        raise InvalidManifest("Error parsing manifest at {}: {}".format(path, exc))

    try:
        manifest = Manifest.from_json(data)
    except (TypeError, AttributeError) as exc:
        raise InvalidManifest("Malformed manifest at {}: {}".format(path, exc))
    logger.debug("Manifest version: %s", manifest.version)
    return manifest


def primary_binary(manifest, technology, architecture):
    try:
        binaries = manifest.technologies[technology][architecture]
    except KeyError:
        raise TechnologyNotFound(technology, architecture)

    for binary in binaries:
        if binary.binary_type == PRIMARY:
            return binary

    raise NoPrimaryBinary(technology, architecture)


def resolve_primary_binary(manifest, technology, architecture):
    """
    Return the path of the primary binary for technology and architecture.

    The path is relative to the installation root the manifest came from.
    Binaries are considered in manifest order; the first primary one wins.
    """
    return primary_binary(manifest, technology, architecture).path


def md5_digest(filename, block_size=65536):
    md5 = hashlib.md5(usedforsecurity=False)
    with open(filename, "rb") as f:
        for block in iter(lambda: f.read(block_size), b""):
            md5.update(block)
    return md5.hexdigest()
