"""Version information for clinirec."""

from importlib import metadata

DISTRIBUTION_NAME = "clinirec"


def get_version() -> str:
    """Get the installed package version, or a development marker."""
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.1.0-dev"


__version__ = get_version()
