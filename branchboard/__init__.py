"""Branch overview service for Bitbucket workspaces."""

__version__ = "0.1.0"
