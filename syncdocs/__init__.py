"""syncdocs: mirror documentation trees from GitHub into aggregated documents."""

from __future__ import annotations

__version__ = "0.1.0"
