"""Mirror Instagram direct messages into a cache and relay them to Discord."""

__version__ = "0.1.0"
