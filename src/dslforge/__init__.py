"""dslforge - LLM-assisted workflow DSL synthesis with deterministic graph checking."""

__version__ = "0.1.0"
