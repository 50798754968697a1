"""evalset — Fixed-task-set evaluation harness for system-prompt variants.

Run a dataset of textual cases against a model, score every response
against declarative expectations, and write reproducible,
content-addressed reports. Compare two variants case by case.
"""

__version__ = "0.1.0"
