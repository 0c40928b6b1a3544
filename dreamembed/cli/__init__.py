# =============================================================================
# dreamembed/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line tools for operators of the embedding pipeline. The single
# entry point (worker.py) is installed as the ``dreamembed`` console script
# and is also runnable as ``python -m dreamembed.cli``.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (openai, numpy via the theme catalog) are deferred
#     inside handlers so that ``status`` and friends start fast.
#   - Each handler builds only the components it needs through the
#     factories in dreamembed/main.py.
# =============================================================================

"""CLI tools for the dreamembed pipeline."""
