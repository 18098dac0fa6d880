r"""@package spectralbvp.utils

General utilities for simplifying certain tasks in Python.
"""

import time
from contextlib import contextmanager


__all__ = [
    "lmap",
    "isiterable",
    "timethis",
]


def lmap(func, *iterables):
    r"""Implementation of `map` that returns a list instead of a generator."""
    return list(map(func, *iterables))


def isiterable(obj):
    """Check whether an object is iterable.

    Note that this returns `True` for strings, which you may or may not intend
    to check for.
    """
    try:
        iter(obj)
    except TypeError:
        return False
    return True


@contextmanager
def timethis(start_msg=None, end_msg="Elapsed time: {}", silent=False):
    r"""Context manager for timing code execution.

    @param start_msg
        String to print at the beginning. May contain the placeholder
        ``{now}``, which will be replaced by the current date and time.
    @param end_msg
        String to print after execution. Use ``{}`` as placeholder for the
        elapsed time in seconds.
    @param silent
        Whether to skip printing anything.
    """
    if start_msg is not None and not silent:
        print(start_msg.format(now=time.strftime("%Y-%m-%d %H:%M:%S")))
    start = time.time()
    try:
        yield
    finally:
        if not silent:
            print(end_msg.format(time.time() - start))
