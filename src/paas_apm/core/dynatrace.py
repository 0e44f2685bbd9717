# coding=utf-8

import logging
import os

from paas_apm.core import credentials as credentials_module
from paas_apm.core import injection
from paas_apm.core.errors import (
    AgentLibraryMissing,
    ChecksumMismatch,
    FetchError,
    HookError,
    InvalidManifest,
)
from paas_apm.core.installer import InstallerDownloader, InstallerRunner, installer_url
from paas_apm.core.manifest import md5_digest, parse_manifest, primary_binary

logger = logging.getLogger(__name__)


class Stager(object):
    """
    The directories the build pipeline hands to a hook.

    `build_dir` holds the application being staged and ends up as $HOME at
    runtime. `dep_dir` is this buildpack's dependency directory; scripts in
    its profile.d are sourced before the application starts.
    """

    def __init__(self, build_dir, dep_dir):
        self.build_dir = build_dir
        self.dep_dir = dep_dir

    def profile_dir(self):
        return os.path.join(self.dep_dir, "profile.d")


class DynatraceHook(object):
    def __init__(self, config, downloader=None, runner=None):
        self.config = config
        if downloader is None:
            downloader = InstallerDownloader(
                timeout=config.value("download_timeout")
            )
        if runner is None:
            runner = InstallerRunner()
        self.downloader = downloader
        self.runner = runner

    def after_compile(self, stager):
        """
        Install and wire up the Dynatrace PaaS agent if a Dynatrace service is
        bound to the application.

        Returns True once agent injection is set up and False when there is
        nothing to do. Raises HookError when the build step must fail.
        """
        logger.debug("Checking for enabled dynatrace service...")

        resolution = self.resolve_credentials()
        if not resolution.enabled:
            return False
        credentials = resolution.credentials

        app_name = self.config.value("application_name")
        if not app_name:
            logger.error(
                "Application name not found in VCAP_APPLICATION. "
                "Not setting up Dynatrace PaaS agent."
            )
            return False

        logger.info(
            "Dynatrace service credentials found. Setting up Dynatrace PaaS agent."
        )

        try:
            installer_path = self.download(credentials)
        except FetchError as exc:
            if credentials.skip_errors:
                logger.warning(
                    "Error during installer download, skipping installation: %s",
                    exc,
                )
                return False
            self.log_failure(exc)
            raise

        try:
            self.install(installer_path, stager)
            agent_lib_path = self.agent_path(stager)
            self.inject(stager, agent_lib_path, app_name)
        except HookError as exc:
            self.log_failure(exc)
            raise
        return True

    def resolve_credentials(self):
        resolution = credentials_module.resolve_from_descriptor(
            self.config.value("vcap_services"),
            name_fragment=self.config.value("service_name_fragment"),
        )
        if isinstance(resolution, credentials_module.Invalid):
            logger.error(
                "Could not read service bindings (%s). "
                "Not setting up Dynatrace PaaS agent.",
                resolution.cause,
            )
        elif isinstance(resolution, credentials_module.Ambiguous):
            logger.debug("Matching services: %s", ", ".join(resolution.names))
        elif not resolution.enabled:
            logger.debug("Dynatrace service credentials not found!")
        return resolution

    def download(self, credentials):
        url = installer_url(credentials)
        installer_path = self.config.value("installer_path")
        logger.debug(
            "Downloading '%s' to '%s'",
            url.replace(credentials.api_token, "****"),
            installer_path,
        )
        self.downloader.fetch(url, installer_path)
        return installer_path

    def install(self, installer_path, stager):
        logger.info("Starting Dynatrace PaaS agent installer")
        self.runner.run(
            installer_path,
            stager.build_dir,
            verbose=self.config.value("bp_debug"),
        )
        logger.info("Dynatrace PaaS agent installed.")

    def install_root(self, stager):
        return os.path.join(stager.build_dir, self.config.value("install_dir"))

    def agent_path(self, stager):
        """
        Return the agent library path relative to the build directory.
        """
        install_root = self.install_root(stager)
        manifest = parse_manifest(
            os.path.join(install_root, self.config.value("manifest_name"))
        )
        binary = primary_binary(
            manifest,
            self.config.value("technology"),
            self.config.value("architecture"),
        )
        relative_path = os.path.normpath(binary.path)
        # The path must stay inside the install root, which becomes $HOME/...
        if os.path.isabs(relative_path) or relative_path.split(os.sep)[0] == os.pardir:
            raise InvalidManifest(
                "Agent path {!r} leaves the installation directory".format(binary.path)
            )
        agent_lib_path = os.path.join(self.config.value("install_dir"), relative_path)

        full_path = os.path.join(stager.build_dir, agent_lib_path)
        if not os.path.isfile(full_path):
            raise AgentLibraryMissing(agent_lib_path)
        if self.config.value("verify_checksum") and binary.checksum:
            try:
                digest = md5_digest(full_path)
            except OSError:
                raise AgentLibraryMissing(agent_lib_path)
            if digest != binary.checksum.lower():
                raise ChecksumMismatch(agent_lib_path, binary.checksum, digest)
        return agent_lib_path

    def inject(self, stager, agent_lib_path, app_name):
        logger.info("Setting up Dynatrace PaaS agent injection...")
        template_path = os.path.join(
            self.install_root(stager), self.config.value("env_script_name")
        )
        script_path = injection.install_env_script(
            template_path, stager.profile_dir()
        )
        injection.inject(
            script_path,
            agent_lib_path,
            injection.host_identifier_expression(app_name),
        )
        logger.info("Dynatrace PaaS agent injection is set up.")

    def log_failure(self, exc):
        logger.error("Dynatrace PaaS agent %s step failed: %s", exc.stage, exc)
