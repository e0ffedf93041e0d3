"""BMark - LLM Consensus Benchmark.

Sends one prompt to many language models and groups their short answers
into consensus clusters.
"""

__version__ = "0.1.0"
