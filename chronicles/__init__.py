"""
chronicles package

This package implements the daily "generate, write, commit, push" automation.

Key responsibilities are split across modules:
- `config.py`: load YAML/environment configuration into a typed model
- `repository.py`: local working copy reconciliation and git publishing
- `notdiamond_client.py`: isolated Not Diamond REST API interactions
- `generator.py`: turn provider payloads into a tagged generation result
- `materializer.py`: write a generated artifact into a fresh project directory
- `workflow.py`: orchestration (ensure repo -> generate -> materialize -> publish)
- `cli.py`: process entrypoint
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
