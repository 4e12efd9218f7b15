from __future__ import annotations

from tests.test_utils.strategies.observation import header_names, header_values, methods, string_maps, url_strategy

__all__ = [
    "header_names",
    "header_values",
    "methods",
    "string_maps",
    "url_strategy",
]
