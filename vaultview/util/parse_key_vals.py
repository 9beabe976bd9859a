"""
Tiny parsing library for command-line arguments given as key-value pairs, like
`folder=companies` or `--sort=Priority:desc`.
"""

from typing import Any, Dict, List, Optional, Tuple

from vaultview.errors import InvalidInput

TRUE_STRS = ("true", "yes", "on", "1")
FALSE_STRS = ("false", "no", "off", "0")


def is_key_value(arg: str) -> bool:
    key, sep, _ = arg.lstrip("-").partition("=")
    return bool(sep) and key.replace("_", "").replace("-", "").isalnum()


def parse_key_value(key_value_str: str) -> Tuple[str, Optional[str]]:
    """
    Parse a string like `foo=123` or `--foo=123` into a `(key, value)` tuple. Dashes in
    the key become underscores. `foo=` (nothing after the `=`) yields `("foo", None)`.
    """
    key, _, value_str = key_value_str.lstrip("-").partition("=")
    key = key.strip().replace("-", "_")
    if not key:
        raise InvalidInput(f"Invalid option: `{key_value_str}`")
    value_str = value_str.strip()
    return key, value_str or None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    canon = str(value).strip().lower()
    if canon in TRUE_STRS:
        return True
    if canon in FALSE_STRS:
        return False
    raise InvalidInput(f"Expected true or false but got: `{value}`")


def parse_args(args: List[str]) -> Tuple[List[str], Dict[str, Any]]:
    """
    Split command arguments into positional args and options. An option given more
    than once collects its values into a list. A bare `--flag` is True.
    """
    positional: List[str] = []
    options: Dict[str, Any] = {}
    for arg in args:
        if is_key_value(arg):
            key, value = parse_key_value(arg)
        elif arg.startswith("--") and len(arg) > 2:
            key, value = arg[2:].replace("-", "_"), True  # type: ignore
        else:
            positional.append(arg)
            continue

        if key in options:
            previous = options[key]
            options[key] = (previous if isinstance(previous, list) else [previous]) + [value]
        else:
            options[key] = value
    return positional, options


## Tests


def test_parse_key_value():
    assert parse_key_value("foo=123") == ("foo", "123")
    assert parse_key_value("--file-class=Company") == ("file_class", "Company")
    assert parse_key_value("foo=") == ("foo", None)
    assert parse_key_value("filter=majors:value === 'a=b'") == ("filter", "majors:value === 'a=b'")


def test_parse_args():
    positional, options = parse_args(
        ["CS companies", "columns=name,website", "filter=a:true", "filter=b:false", "--overwrite"]
    )
    assert positional == ["CS companies"]
    assert options == {
        "columns": "name,website",
        "filter": ["a:true", "b:false"],
        "overwrite": True,
    }
    assert parse_args(["value > 1"]) == (["value > 1"], {})
    assert parse_bool("yes") and not parse_bool("off")
