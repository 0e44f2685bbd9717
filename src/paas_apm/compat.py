# coding=utf-8

import inspect
from functools import wraps

import certifi
import urllib3


def kwargs_only(func):
    """
    Make a function only accept keyword arguments (beyond ``self``/``cls``).
    """
    signature = inspect.signature(func)
    arg_names = list(signature.parameters.keys())

    if len(arg_names) > 0 and arg_names[0] in ("self", "cls"):
        allowable_args = 1
    else:
        allowable_args = 0

    @wraps(func)
    def wrapper(*args, **kwargs):
        if len(args) > allowable_args:
            raise TypeError(
                "{} should only be called with keyword args".format(func.__name__)
            )
        return func(*args, **kwargs)

    return wrapper


def urllib3_cert_pool_manager(**kwargs):
    return urllib3.PoolManager(
        cert_reqs="CERT_REQUIRED", ca_certs=certifi.where(), **kwargs
    )


__all__ = ["kwargs_only", "urllib3_cert_pool_manager"]
