"""Block-based page builder: plugin orchestration and live preview."""

__version__ = "1.0.0"
