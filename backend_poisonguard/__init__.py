"""
Backend PoisonGuard: address-poisoning risk analysis for blockchain transactions.

Scores each transaction against a set of known reference (anchor) addresses:
address similarity, small-amount and temporal-proximity signals are combined
by a logistic decision model into a leveled action (PASS / WARNING / BLOCK).
Modular layout: analysis engine, ingestion/session, config, API server, tools.
"""

__version__ = "0.1.0"
