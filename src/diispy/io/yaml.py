"""YAML wrappers handling includes and environment substitution."""
__all__ = ["load", "load_section", "dump"]

import os

import yaml

from . import dict as dict_utils
from ._error import InvalidInputException


def load(filename: str, already_included: tuple = tuple()) -> dict:
    """Load input from `filename` in YAML format to a nested dict.
    Handles environment substitution and processes `include` keys.
    Keep track of `already_included` filenames to prevent cyclic includes,
    when recursively processing include directives."""
    with open(filename) as f:
        result = yaml.safe_load(os.path.expandvars(f.read()))
    if result is None:
        return {}  # empty file
    if not isinstance(result, dict):
        raise InvalidInputException(f"{filename} does not contain a YAML mapping")
    return _process_includes(result, already_included + (filename,))


def load_section(filename: str, section: str) -> dict:
    """Load the `section` entry of YAML file `filename`, with keys cleaned up
    for use as keyword arguments. A missing section yields an empty dict."""
    params = load(filename).get(section)
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidInputException(f"Section '{section}' in {filename} is not a map")
    return dict_utils.key_cleanup(params)


def dump(d: dict) -> str:
    """Convert nested dictionary to YAML-format string."""
    return yaml.dump(d, default_flow_style=None)


def _process_includes(d: dict, already_included: tuple) -> dict:
    """Recursively process `include` directives in nested dictionary."""
    for key, value in d.items():
        if isinstance(value, dict):
            d[key] = _process_includes(value, already_included)
    include_names = d.pop("include", [])
    if not include_names:
        return d
    if isinstance(include_names, str):
        include_names = [include_names]
    d_list = []
    for include_name in include_names:
        if include_name in already_included:
            raise RecursionError(
                f'Cyclic include {" > ".join(already_included)} > {include_name}'
            )
        d_list.append(load(include_name, already_included))
    d_list.append(d)  # current dict is last (highest priority)
    return dict_utils.merge(d_list)
