"""Global pytest configuration."""

import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "known_vector: mark test as checking a published AWS signing example"
    )
    config.addinivalue_line(
        "markers", "edge_case: mark test as edge case or boundary condition"
    )
