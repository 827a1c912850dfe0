"""Utilities to manipulate nested dictionaries read from input files."""
__all__ = ["key_cleanup", "flatten", "unflatten", "merge"]


def key_cleanup(params: dict, recursive: bool = False) -> dict:
    """Replace hyphens in the keys of `params` by underscores.
    Hyphenated keys read better in YAML input, while underscores are needed
    to pass the keys as keyword-only arguments to constructors.
    Nested dictionaries are also cleaned up if `recursive` is True."""
    return {
        key.replace("-", "_"): (
            key_cleanup(value, True)
            if (recursive and isinstance(value, dict))
            else value
        )
        for key, value in params.items()
    }


def flatten(d: dict, _key_prefix: tuple = tuple()) -> dict:
    """Convert nested dict `d` to a flat dict with tuple keys.
    Input `_key_prefix` is prepended to the keys of the resulting dict,
    and is used internally for recursively flattening the dict."""
    result = {}
    for key, value in d.items():
        flat_key = _key_prefix + (key,)
        if isinstance(value, dict) and value:
            result.update(flatten(value, flat_key))
        else:
            result[flat_key] = value
    return result


def unflatten(d: dict) -> dict:
    """Unpack tuple keys in `d` to a nested dictionary.
    (Inverse of :func:`flatten`.)"""
    result: dict = {}
    for key_tuple, value in d.items():
        target = result
        for key in key_tuple[:-1]:
            target = target.setdefault(key, {})
        target[key_tuple[-1]] = value
    return result


def merge(d_list: list[dict]) -> dict:
    """Merge a list of nested dictonaries `d_list`.
    Later dictionaries override values of keys present in earlier ones,
    at every level of nesting."""
    result = {}
    for d in d_list:
        result.update(flatten(d))
    return unflatten(result)
