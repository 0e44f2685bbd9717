# coding=utf-8

import logging
import os
import subprocess

from urllib3 import Retry
from urllib3.exceptions import HTTPError

from paas_apm.compat import urllib3_cert_pool_manager
from paas_apm.core.errors import (
    BadStatus,
    LocalFileError,
    NetworkError,
    NonZeroExit,
    SpawnFailed,
)

logger = logging.getLogger(__name__)

# Redirects are followed; failed requests are never retried.
DOWNLOAD_RETRIES = Retry(total=None, connect=0, read=0, status=0, other=0, redirect=10)

INSTALLER_PATH = (
    "/v1/deployment/installer/agent/unix/paas-sh/latest"
    "?include=nodejs&include=process&bitness=64&Api-Token={api_token}"
)


def installer_url(credentials):
    return credentials.api_url + INSTALLER_PATH.format(
        api_token=credentials.api_token
    )


class InstallerDownloader(object):
    def __init__(self, http=None, timeout=None):
        self.http = http
        self.timeout = timeout
        self.chunk_size = 65536

    def fetch(self, url, destination):
        try:
            fp = open(destination, "wb")
        except OSError as exc:
            raise LocalFileError(destination, exc)

        with fp:
            self.download_to(url, fp, destination)

        logger.debug("Making %s executable...", destination)
        try:
            os.chmod(destination, 0o755)
        except OSError as exc:
            raise LocalFileError(destination, exc)

    def download_to(self, url, fp, destination):
        http = self.http
        if http is None:
            http = urllib3_cert_pool_manager()
        try:
            response = http.request(
                "GET",
                url,
                preload_content=False,
                timeout=self.timeout,
                retries=DOWNLOAD_RETRIES,
            )
        except HTTPError as exc:
            raise NetworkError(exc)

        try:
            if response.status != 200:
                raise BadStatus(response.status, url=url)
            for chunk in response.stream(self.chunk_size):
                try:
                    fp.write(chunk)
                except OSError as exc:
                    raise LocalFileError(destination, exc)
        except HTTPError as exc:
            raise NetworkError(exc)
        finally:
            response.release_conn()


class ProcessExecutor(object):
    """
    Runs an external program to completion and returns its exit status.

    stdout and stderr are passed through to subprocess; None inherits the
    hook's own streams.
    """

    def execute(self, args, stdout=None, stderr=None):
        return subprocess.call(args, stdout=stdout, stderr=stderr, close_fds=True)


class InstallerRunner(object):
    def __init__(self, executor=None):
        if executor is None:
            executor = ProcessExecutor()
        self.executor = executor

    def run(self, installer_path, target_dir, verbose=False):
        args = [installer_path, target_dir]
        logger.debug("Running %s", " ".join(args))
        try:
            if verbose:
                code = self.executor.execute(args)
            else:
                with open(os.devnull, "wb") as devnull:
                    code = self.executor.execute(args, stdout=devnull, stderr=devnull)
        except OSError as exc:
            raise SpawnFailed(installer_path, exc)

        if code != 0:
            raise NonZeroExit(code)
