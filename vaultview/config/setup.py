from enum import Enum
from pathlib import Path
from typing import Any, Optional

from cachetools import cached

from vaultview.config.logger import reset_logging


@cached(cache={})
def setup(log_root: Optional[Path] = None):
    """
    One-time setup of logging and library configs. Idempotent.
    """

    reset_logging(log_root)

    lib_setup()


def lib_setup():
    from frontmatter_format.yaml_util import add_default_yaml_customizer
    from ruamel.yaml import Representer

    def represent_enum(dumper: Representer, data: Enum) -> Any:
        """
        Represent Enums as their values, so field types and sort directions
        are stored as readable strings.
        """
        return dumper.represent_str(data.value)

    add_default_yaml_customizer(
        lambda yaml: yaml.representer.add_multi_representer(Enum, represent_enum)
    )
