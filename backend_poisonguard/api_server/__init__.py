"""
API server package: HTTP interface over the analysis session.

Accepts transaction and anchor uploads, exposes the config surface, and
serves ranked results. Delegates all scoring to the analysis engine.
"""
