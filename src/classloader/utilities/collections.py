from typing import Any, Optional


class CompoundKey(tuple):
    """The chain of keys leading to a value of a nested dictionary."""


def dict_to_flatdict(
    dct: dict[str, Any], parent: Optional[CompoundKey] = None
) -> dict[CompoundKey, Any]:
    """
    Flatten a nested dictionary into a dictionary keyed by `CompoundKey`.

    Empty dictionaries are kept as values so they survive a round trip through
    `flatdict_to_dict`.

    Examples:
        ```python
        dict_to_flatdict({"root": {"level": "INFO"}})
        # {("root", "level"): "INFO"}
        ```
    """
    parent = parent or CompoundKey()
    flat: dict[CompoundKey, Any] = {}
    for key, value in dct.items():
        compound = CompoundKey(parent + (key,))
        if isinstance(value, dict) and value:
            flat.update(dict_to_flatdict(value, parent=compound))
        else:
            flat[compound] = value
    return flat


def flatdict_to_dict(dct: dict[Any, Any]) -> dict[str, Any]:
    """
    Rebuild a nested dictionary from the output of `dict_to_flatdict`.
    """
    nested: dict[str, Any] = {}
    for key, value in dct.items():
        if not isinstance(key, CompoundKey):
            nested[key] = value
            continue
        current = nested
        for part in key[:-1]:
            current = current.setdefault(part, {})
        current[key[-1]] = value
    return nested
