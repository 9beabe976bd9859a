import tomllib
from importlib import metadata
from pathlib import Path

from vaultview.config.settings import APP_NAME


def get_pyproject_version() -> str:
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    pyproject_data = tomllib.loads(pyproject_path.read_text())
    return pyproject_data["project"]["version"]


def get_version() -> str:
    try:
        # Installed package metadata, when available.
        return metadata.version(APP_NAME)
    except metadata.PackageNotFoundError:
        # For development from a source tree.
        return get_pyproject_version()


if __name__ == "__main__":
    print(get_version())
