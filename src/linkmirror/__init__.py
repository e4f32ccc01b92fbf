# SPDX-License-Identifier: MIT
"""Link Mirror - keep a local mirror of a remote Bitable link table fresh."""

from importlib.metadata import PackageNotFoundError, version


__all__: list[str] = ["__version__"]

# Get version from installed package metadata
__version__: str
try:
    __version__ = version("link-mirror")
except PackageNotFoundError:
    # Package is not installed, use development fallback
    __version__ = "development"
