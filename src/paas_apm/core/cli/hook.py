# coding=utf-8

import argparse
import logging

from paas_apm.core import install
from paas_apm.core.config import HookConfig
from paas_apm.core.errors import HookError

logger = logging.getLogger(__name__)


def dynatrace(build_dir, dep_dir, **kwargs):
    install(build_dir=build_dir, dep_dir=dep_dir)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="paas-apm-hook")
    parser.add_argument(
        "-v", "--verbose", help="increase output verbosity", action="count"
    )

    subparsers = parser.add_subparsers(dest="subparser")
    subparsers.required = True

    dynatrace_parser = subparsers.add_parser(
        "dynatrace", help="install and inject the Dynatrace PaaS agent"
    )
    dynatrace_parser.add_argument("build_dir")
    dynatrace_parser.add_argument("dep_dir")

    args = parser.parse_args(argv)

    # BP_DEBUG is the platform's switch for verbose buildpack output.
    if args.verbose is not None or HookConfig().value("bp_debug"):
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    kwargs = vars(args)
    kwargs.pop("verbose")
    command = globals()[kwargs.pop("subparser")]
    try:
        command(**kwargs)
    except HookError as exc:
        logger.error("Hook failed during %s: %s", exc.stage, exc)
        return 1
    return 0
