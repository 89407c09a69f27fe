"""storyloom: deterministic manuscript import and story-graph integrity."""

__version__ = "0.1.0"
