"""
Engine runner.

Runs the contact reconciler and the deal generator over one set of
downloaded marketplace records and collects what each produced.
"""

from .runner import EngineRunner, RunInput, RunResult, collect_records, run_once

__all__ = [
    'EngineRunner',
    'RunInput',
    'RunResult',
    'collect_records',
    'run_once',
]
