"""NPM Gallery: multi-source package metadata for npm, Maven and NuGet."""

from npm_gallery.constants import VERSION

__version__ = VERSION

__all__ = ["__version__"]
