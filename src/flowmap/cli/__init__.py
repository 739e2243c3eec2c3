"""Command-line interface modules for the flowmap pipeline.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from flowmap.cli.run_flowmap import run_flowmap_pipeline

__all__ = ['run_flowmap_pipeline']
